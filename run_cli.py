"""
Run the Waycraft travel assistant CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    init-db          Create or upgrade the SQLite schema
    ask              One-shot question, answer streamed to the terminal
    chat             Interactive chat session
    preferences      Show a user's stored preferences
    memories         Show a user's recent conversation memories
    purge-memories   Delete memories older than the retention window

Examples:
    python run_cli.py init-db
    python run_cli.py ask "What's the weather in Lyon?"
    python run_cli.py chat --user alice

Environment variables (all optional):
    LLM_PROVIDER        "openai", "groq", or "ollama"
    LLM_MODEL_OPENAI    Model name when LLM_PROVIDER=openai (default: gpt-4.1-mini)
    LLM_MODEL_GROQ      Model name when LLM_PROVIDER=groq (default: llama-3.3-70b-versatile)
    LLM_MODEL_OLLAMA    Model name when LLM_PROVIDER=ollama (default: llama3.2)
    OPENAI_API_KEY      Required when LLM_PROVIDER=openai
    GROQ_API_KEY        Required when LLM_PROVIDER=groq
    EMBEDDING_PROVIDER  "huggingface", "ollama", "openai", or "none"
    DB_PATH             SQLite database file path (default: waycraft.db)
    OLLAMA_BASE_URL     Ollama server URL (default: http://localhost:11434/)
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    app()
