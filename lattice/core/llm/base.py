"""
LLM provider interface for structured entity extraction.

Providers only ever answer with a pydantic model: the extractor sends one
prompt per document and expects an ExtractionPayload back.
"""

from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel

from lattice.utils.exceptions import ValidationError

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def require_prompt(prompt: str) -> None:
    """Reject blank prompts before any provider call."""
    if not prompt or not prompt.strip():
        raise ValidationError("Prompt cannot be empty")


class LLMProvider(ABC):
    """Abstract base for providers that return schema-conforming replies."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        response_format: type[ResponseT],
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ) -> ResponseT:
        """
        Ask the model for a reply matching response_format.

        Raises:
            ValidationError: If the prompt is blank or the reply doesn't match the schema
            LLMError: If the provider call fails
        """
        pass

    @abstractmethod
    async def close(self):
        """Close any open connections."""
