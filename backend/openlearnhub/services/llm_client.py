# backend/openlearnhub/services/llm_client.py
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import UpstreamError

logger = logging.getLogger("openlearnhub.services.llm_client")
logger.setLevel(logging.INFO)

FALLBACK_TEXT = "AI service is currently unavailable."

RECOMMENDATION_SYSTEM_PROMPT = "You are a helpful and friendly course recommendation assistant."


def extract_content(data: Any) -> Optional[str]:
    """Pull `choices[0].message.content` out of a chat completion payload."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content:
        return None
    return content


class CompletionClient:
    """
    OpenRouter chat-completions client.
    One attempt per call, no retry.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        referer: str = "http://localhost:5000",
        title: str = "OpenLearnHub",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._referer = referer
        self._title = title
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._referer,
            "X-Title": self._title,
        }

    async def _post(self, system_prompt: str, user_prompt: str, model: str) -> Dict[str, Any]:
        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(self._url, headers=self._headers(), json=body)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                raise UpstreamError(f"Completion API error {e.response.status_code}: {e.response.text}")
            except (httpx.HTTPError, ValueError) as e:
                raise UpstreamError(f"Completion request failed: {e}")

    async def complete_raw(self, system_prompt: str, user_prompt: str, model: str) -> Optional[str]:
        """
        Strict variant: transport and HTTP failures raise UpstreamError,
        a response without content gives None.
        """
        data = await self._post(system_prompt, user_prompt, model)
        content = extract_content(data)
        if content is None:
            logger.error(f"Completion response without content: {str(data)[:500]}")
        return content

    async def complete(self, system_prompt: str, user_prompt: str, model: str) -> str:
        """Return the completion text, or FALLBACK_TEXT on any failure."""
        try:
            content = await self.complete_raw(system_prompt, user_prompt, model)
        except UpstreamError as e:
            logger.error(f"Error with OpenRouter request: {e}")
            return FALLBACK_TEXT
        if content is None:
            return FALLBACK_TEXT
        return content


async def recommend_courses(completion: CompletionClient, user_input: str, model: str) -> str:
    logger.info(f"Requesting course recommendation ({len(user_input)} characters of input)")
    return await completion.complete(RECOMMENDATION_SYSTEM_PROMPT, user_input, model)
