"""Client for the writing assistance service.

The service streams plain text back; failures arrive as a JSON
``{"error": ...}`` body with a non-2xx status. ``AssistantSession`` keeps
the streamed answer and any error message for display, and hands finished
text to whatever insert capability its owner gave it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import AsyncIterator, Callable, Optional

import httpx
from pydantic import BaseModel

from noter.config import settings

logger = logging.getLogger(__name__)

EMPTY_RESPONSE = "No response received. Check AI configuration."


class AssistantAction(str, Enum):
    CONTINUE = "continue"
    IMPROVE = "improve"
    SUMMARIZE = "summarize"
    BRAINSTORM = "brainstorm"
    HAIKU = "haiku"
    TRANSLATE = "translate"
    CUSTOM = "custom"


class AssistantRequest(BaseModel):
    """Body of ``POST /ai``."""

    action: Optional[str] = None
    prompt: Optional[str] = None
    content: str = ""
    selection: str = ""
    model: Optional[str] = None

    def resolved_action(self) -> Optional[AssistantAction]:
        """The requested action; a bare prompt means a custom request."""
        if self.action is None:
            return AssistantAction.CUSTOM if self.prompt and self.prompt.strip() else None
        try:
            return AssistantAction(self.action)
        except ValueError:
            return None


class ModelInfo(BaseModel):
    id: str
    label: str
    provider: str


class ModelCatalog(BaseModel):
    models: list[ModelInfo]
    default: str


class AssistantError(Exception):
    """The assistance service failed; the message is meant for the user."""


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"HTTP {response.status_code}"


class AssistantClient:
    """Async HTTP client for the ``/ai`` endpoint."""

    def __init__(
        self,
        base_url: str = settings.assistant_url,
        timeout: float = settings.assistant_timeout,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        )

    async def list_models(self) -> ModelCatalog:
        try:
            async with self._client() as client:
                resp = await client.get("/ai")
        except httpx.HTTPError as e:
            raise AssistantError(str(e) or "AI service unavailable") from e
        if not resp.is_success:
            raise AssistantError(_error_message(resp))
        return ModelCatalog.model_validate(resp.json())

    async def stream(self, request: AssistantRequest) -> AsyncIterator[str]:
        """Yield response text incrementally until the stream ends."""
        payload = request.model_dump(exclude_none=True)
        try:
            async with self._client() as client:
                async with client.stream("POST", "/ai", json=payload) as resp:
                    if not resp.is_success:
                        await resp.aread()
                        raise AssistantError(_error_message(resp))
                    async for chunk in resp.aiter_text():
                        if chunk:
                            yield chunk
        except httpx.HTTPError as e:
            logger.warning("Assistant request failed: %s", e)
            raise AssistantError(str(e) or "AI service unavailable") from e


class AssistantSession:
    """State behind one assistant panel."""

    def __init__(
        self,
        client: AssistantClient,
        on_insert: Callable[[str], object],
        on_text: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._client = client
        self._on_insert = on_insert
        self._on_text = on_text
        self.text = ""
        self.error: Optional[str] = None
        self.loading = False

    async def run(self, request: AssistantRequest) -> str:
        """Stream a response. Failures end up in ``error``, never raised."""
        if self.loading:
            return self.text
        self.loading = True
        self.text = ""
        self.error = None
        try:
            async for chunk in self._client.stream(request):
                self.text += chunk
                if self._on_text is not None:
                    self._on_text(self.text)
            if not self.text.strip():
                self.error = EMPTY_RESPONSE
        except AssistantError as e:
            self.error = str(e)
        finally:
            self.loading = False
        return self.text

    def insert(self) -> bool:
        """Hand the finished answer to the owner's insert capability."""
        if self.loading or not self.text.strip():
            return False
        self._on_insert(self.text)
        return True
