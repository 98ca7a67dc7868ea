"""OpenAI Chat Completions client for vision detection."""

from dataclasses import dataclass

import httpx
from openai import APIError, AsyncOpenAI

from item_detection.config import chat_completions_base_url
from item_detection.services.vision import VisionClient, VisionRequestError


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by the OpenAI Chat Completions API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 10.0,
    ) -> "OpenAIVisionClient":
        """Create an OpenAI vision client without automatic retries."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                base_url=chat_completions_base_url(base_url),
                timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
                max_retries=0,
            )
        )

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str,
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Send one image with the prompt and return the reply text."""
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image_data_url}},
                        ],
                    }
                ],
                temperature=temperature,
                max_completion_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except APIError as exc:
            raise VisionRequestError(f"OpenAI request failed: {exc}") from exc

        error = getattr(response, "error", None)
        if error:
            raise VisionRequestError(f"OpenAI returned an error: {error}")
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
