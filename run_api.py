"""
Run the Waycraft travel assistant WebSocket API.

Usage:
    python run_api.py

Connect to ws://localhost:8000/ws/chat?session=<token>&user=<id>&trip=<uuid>

Environment variables (all optional):
    LLM_PROVIDER        "openai", "groq", or "ollama"
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

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "adapters.rest.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
