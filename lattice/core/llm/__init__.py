"""
LLM providers for Lattice.

Available providers:
- OllamaLLM: Local models served by Ollama
- OpenAILLM: OpenAI chat completions
"""

from lattice.core.llm.base import LLMProvider
from lattice.core.llm.ollama import OllamaLLM
from lattice.core.llm.openai import OpenAILLM

__all__ = [
    "LLMProvider",
    "OllamaLLM",
    "OpenAILLM",
]
