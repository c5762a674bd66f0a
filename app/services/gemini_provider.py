"""
Gemini provider for analyses. Uses the google-genai async client with an AI Studio API key.
One instance per key; the gateway holds a primary and an optional backup.
"""
from typing import Any

from google import genai
from google.genai.types import GenerateContentConfig

from app.services.model_gateway import ModelProvider, ProviderResponse
from app.services.prompts import Prompt


def _token_count(usage: Any, key: str) -> int:
    """Get token count from usage_metadata (dict or Pydantic model)."""
    if usage is None:
        return 0
    if isinstance(usage, dict):
        return int(usage.get(key) or 0)
    return int(getattr(usage, key, 0) or 0)


class GeminiProvider(ModelProvider):
    def __init__(self, api_key: str, name: str = "gemini"):
        self.name = name
        self._client = genai.Client(api_key=api_key)

    async def generate(self, model: str, prompt: Prompt) -> ProviderResponse:
        response = await self._client.aio.models.generate_content(
            model=model,
            contents=prompt.text,
            config=GenerateContentConfig(
                system_instruction=prompt.system_instruction,
                temperature=prompt.temperature,
                max_output_tokens=prompt.max_output_tokens,
                response_mime_type="application/json",
            ),
        )
        if not response or not response.candidates:
            raise ValueError("Empty response from model")
        candidate = response.candidates[0]
        if not candidate.content or not candidate.content.parts:
            raise ValueError("No text in model response")
        text = getattr(response, "text", None) or candidate.content.parts[0].text
        usage = getattr(response, "usage_metadata", None)
        return ProviderResponse(
            text=text or "",
            input_tokens=_token_count(usage, "prompt_token_count"),
            output_tokens=_token_count(usage, "candidates_token_count"),
        )
