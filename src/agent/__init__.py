"""
agent - Conversational agent orchestration layer.

Contains the tool catalog and tools, the streaming decoder, the tool
coordinator, the bounded agent loop, prompts, and the turn orchestrator.
Depends on domain/ and application/. Never imports from infrastructure/.
"""
