"""LLM integration: chat transport and prompt assembly."""
