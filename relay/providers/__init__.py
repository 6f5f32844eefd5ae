"""LLM backends used by the relay (currently a local Ollama server)."""

from .ollama import InferenceError, OllamaClient

__all__ = ["InferenceError", "OllamaClient"]
