from typing import List, Dict, Any, Optional
import logging

import httpx

from ..config import settings
from ..core.errors import MisconfiguredProvider, ProviderFailure

logger = logging.getLogger("rag.llm")


class LLMError(ProviderFailure):
    """Raised when the chat completion call fails."""


class LLMClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key if api_key is not None else settings.openai_key()
        self.model = model or settings.chat_model
        self.temperature = settings.chat_temperature if temperature is None else temperature
        self.base_url = (base_url or settings.openai_base_url).rstrip("/") + "/chat/completions"
        self.timeout = timeout

    def ensure_configured(self) -> None:
        """Fail fast when no credential is configured."""
        if not self.api_key:
            raise MisconfiguredProvider("Missing OPENAI_API_KEY")

    async def chat(
        self,
        system_prompt: str,
        messages: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Returns the raw message dict from OpenAI, e.g.:
        {
            "role": "assistant",
            "content": "..."
        }
        The call is made once and never retried.
        """
        self.ensure_configured()

        payload = {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}] + messages,
            "temperature": self.temperature,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.base_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Chat completion failed (%s): %s", type(exc).__name__, exc)
            raise LLMError(f"LLM call failed: {type(exc).__name__}: {exc}") from exc

        data = resp.json()
        try:
            return data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError("Malformed chat completion response") from exc
