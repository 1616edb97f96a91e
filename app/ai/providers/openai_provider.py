from __future__ import annotations

from typing import Optional

from openai import AsyncOpenAI

from app.ai.types import OracleRequest, OracleResponse
from app.services.prompts import SYSTEM_PROMPT


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
        temperature: float = 0.0,
        seed: Optional[int] = 43,
        max_output_tokens: int = 4000,
    ):
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is missing")

        self.model_name = model
        self._temperature = temperature
        self._seed = seed
        self._max_output_tokens = max_output_tokens
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_s,
            max_retries=max_retries,
        )

    async def complete(self, request: OracleRequest) -> OracleResponse:
        create_kwargs = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": request.prompt_text},
            ],
            "temperature": self._temperature,
            "response_format": {"type": "json_object"},
            "max_tokens": self._max_output_tokens,
        }
        if self._seed is not None:
            create_kwargs["seed"] = self._seed

        response = await self._client.chat.completions.create(**create_kwargs)
        content = response.choices[0].message.content if response.choices else ""
        return OracleResponse(text=content or "")
