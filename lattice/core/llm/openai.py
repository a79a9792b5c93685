"""
OpenAI provider backed by the SDK's structured output parse API.
"""

from openai import AsyncOpenAI

from lattice.core.llm.base import LLMProvider, ResponseT, require_prompt
from lattice.utils.exceptions import LLMError, ValidationError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAILLM(LLMProvider):
    """OpenAI chat model; replies are parsed straight into the response model."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Args:
            api_key: OpenAI API key
            model: Chat model with structured output support
            base_url: Optional compatible endpoint
            timeout: Request timeout in seconds
        """
        self.model = model
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def complete(
        self,
        prompt: str,
        response_format: type[ResponseT],
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ) -> ResponseT:
        require_prompt(prompt)

        try:
            response = await self.client.chat.completions.parse(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format=response_format,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"OpenAI parse call failed ({self.model}, {type(e).__name__}): {e}")
            raise LLMError(f"OpenAI API error: {e}") from e

        message = response.choices[0].message
        if message.parsed is None:
            reason = getattr(message, "refusal", None) or "no parsed content"
            raise ValidationError(f"OpenAI returned empty parsed response: {reason}")
        return message.parsed

    async def close(self):
        await self.client.close()
