"""FastAPI service for streamed writing assistance.

Endpoints:
  GET    /ai        — Available models and the default model
  POST   /ai        — Stream a completion for an action or free-form prompt
  GET    /health    — Service status
  GET    /metrics   — Prometheus metrics
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_ollama import ChatOllama
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import ValidationError

from noter.assistant import AssistantAction, AssistantRequest
from noter.config import settings
from noter.metrics import ASSISTANT_REQUESTS

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a quiet writing companion inside a note editor.
Help the writer with clarity, creativity and beauty.
Keep answers concise and considered.
Use markdown where it helps.
Answer in the language of the writer's text when you can."""

_PROMPTS: dict[AssistantAction, str] = {
    AssistantAction.CONTINUE: (
        "Continue writing naturally from where this text leaves off. "
        "Match its tone, style and language. Write 2-3 paragraphs:\n\n{content}"
    ),
    AssistantAction.IMPROVE: (
        "Improve this text while keeping its voice. Make it clearer and more "
        "vivid. Return only the improved text:\n\n{target}"
    ),
    AssistantAction.SUMMARIZE: (
        "Write a concise summary of this text in the same language:\n\n{content}"
    ),
    AssistantAction.BRAINSTORM: (
        "Brainstorm 7 creative ideas related to this text, as a markdown list "
        "with a short description each:\n\n{content}"
    ),
    AssistantAction.HAIKU: (
        "Capture the essence of this text in a 5-7-5 haiku, written in the "
        "text's language:\n\n{content}"
    ),
    AssistantAction.TRANSLATE: (
        "Translate this text to Japanese, keeping meaning and nuance. Add "
        "furigana for difficult kanji:\n\n{content}"
    ),
    AssistantAction.CUSTOM: (
        "Context (the writer's note):\n{content}\n\nRequest: {prompt}"
    ),
}


def build_prompt(action: AssistantAction, request: AssistantRequest) -> str:
    """Render the user prompt for ``action``; improve works on the selection."""
    return _PROMPTS[action].format(
        content=request.content,
        target=request.selection or request.content,
        prompt=(request.prompt or "").strip(),
    )


def _chunk_text(chunk: Any) -> str:
    content = getattr(chunk, "content", "")
    if isinstance(content, str):
        return content
    return "".join(
        part.get("text", "") if isinstance(part, dict) else str(part) for part in content
    )


app = FastAPI(title="noter assistant", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Endpoints ---


@app.get("/ai")
async def list_models() -> dict[str, Any]:
    """Models the editor may pick from."""
    return {
        "models": [
            {"id": m.id, "label": m.label, "provider": m.provider}
            for m in settings.models
        ],
        "default": settings.ollama_model,
    }


@app.post("/ai", response_model=None)
async def assist(request: Request) -> Response:
    """Stream a plain-text completion, or return ``{"error": ...}``."""
    try:
        body = AssistantRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    action = body.resolved_action()
    if action is None:
        ASSISTANT_REQUESTS.labels(action=str(body.action), status="rejected").inc()
        return JSONResponse({"error": "Unknown action"}, status_code=400)

    model_id = body.model or settings.ollama_model
    messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=build_prompt(action, body))]

    try:
        model = ChatOllama(model=model_id, base_url=settings.ollama_base_url)
        stream = model.astream(messages)
        # Pull the first chunk so connection failures still get a JSON error.
        first = await anext(stream, None)
    except Exception as e:
        logger.error("Assistant %s on %s failed: %s", action.value, model_id, e)
        ASSISTANT_REQUESTS.labels(action=action.value, status="error").inc()
        return JSONResponse(
            {"error": str(e) or "AI service unavailable"}, status_code=500
        )

    ASSISTANT_REQUESTS.labels(action=action.value, status="success").inc()
    logger.info("Assistant %s streaming from %s", action.value, model_id)

    async def _body() -> AsyncIterator[str]:
        if first is None:
            return
        yield _chunk_text(first)
        async for chunk in stream:
            text = _chunk_text(chunk)
            if text:
                yield text

    return StreamingResponse(_body(), media_type="text/plain; charset=utf-8")


@app.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "healthy", "server": "noter-assistant", "model": settings.ollama_model}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
