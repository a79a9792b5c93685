"""
Ollama provider: the response model's JSON schema is sent as the chat format.
"""

import ollama
from pydantic import ValidationError as PydanticValidationError

from lattice.core.llm.base import LLMProvider, ResponseT, require_prompt
from lattice.utils.exceptions import LLMError, ValidationError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)


def strip_code_fence(content: str) -> str:
    """Remove a markdown code fence some models wrap around JSON replies."""
    content = content.strip()
    if not content.startswith("```"):
        return content

    body = content.split("\n", 1)[1] if "\n" in content else ""
    if body.rstrip().endswith("```"):
        body = body.rstrip()[:-3]
    return body.strip()


class OllamaLLM(LLMProvider):
    """Local Ollama chat model constrained to a JSON schema."""

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        timeout: float = 120.0,
    ):
        self.host = host
        self.model = model
        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def complete(
        self,
        prompt: str,
        response_format: type[ResponseT],
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ) -> ResponseT:
        require_prompt(prompt)

        try:
            response = await self.client.chat(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                format=response_format.model_json_schema(),
                options={"temperature": temperature, "num_predict": max_tokens},
            )
        except Exception as e:
            logger.error(f"Ollama chat failed ({self.model} at {self.host}): {e}")
            raise LLMError(f"Ollama chat error: {e}") from e

        content = strip_code_fence(response["message"]["content"])
        try:
            return response_format.model_validate_json(content)
        except PydanticValidationError as e:
            raise ValidationError(f"Reply does not match {response_format.__name__}: {e}") from e

    async def close(self):
        """Nothing to release; the SDK owns its HTTP client."""
