"""OpenAI-compatible generation adapter (Groq chat completions)."""

from __future__ import annotations

import logging
from typing import Sequence

from openai import AsyncOpenAI, OpenAIError

from core.errors import GenerationFailureError

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAICompatibleGenerator:
    """Generation backend that satisfies GenerationPort via the openai SDK."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE_URL, timeout_seconds: float = 30.0) -> None:
        # SDK retries are off; a failed call goes to the keyword fallback instead.
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )

    async def aclose(self) -> None:
        await self._client.close()

    async def complete(
        self,
        model: str,
        messages: Sequence[dict[str, str]],
        temperature: float,
        max_tokens: int,
        top_p: float,
    ) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=model,
                messages=list(messages),
                temperature=temperature,
                max_tokens=max_tokens,
                top_p=top_p,
            )
        except OpenAIError as exc:
            raise GenerationFailureError(f"Generation request failed: {exc}") from exc

        if not completion.choices:
            raise GenerationFailureError("Generation backend returned no choices")
        content = completion.choices[0].message.content or ""
        LOGGER.debug("Generated %s characters with %s", len(content), model)
        return content.strip()
