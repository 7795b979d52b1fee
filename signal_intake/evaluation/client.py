"""Chat completion client used by the evaluator."""

from typing import Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

from .exceptions import AIEvaluationError


class ChatCompletionClient(Protocol):
    """Minimal contract for JSON-mode chat completions."""

    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
    ) -> str:
        ...


class OpenAIChatClient:
    """Thin wrapper around ``AsyncOpenAI`` chat completions.

    Works against OpenAI directly or any OpenAI-compatible gateway
    (OpenRouter) through ``base_url``.
    """

    def __init__(self, api_key: str, base_url: Optional[str] = None, timeout: float = 60.0) -> None:
        if not api_key:
            raise ValueError("An API key is required to call the AI provider")
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except OpenAIError as e:
            raise AIEvaluationError(f"{type(e).__name__}: {e}", model=model) from e

        if not response.choices:
            raise AIEvaluationError("Response contained no choices", model=model)

        content = response.choices[0].message.content
        if not content or not content.strip():
            raise AIEvaluationError("Response content was empty", model=model)
        return content.strip()

    async def close(self) -> None:
        await self._client.close()
