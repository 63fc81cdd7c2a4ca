"""
Farming assistant chat, rate limited per client IP.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from cropmarket.api.dependencies import get_rate_limiter, get_state
from cropmarket.api.middleware import get_client_ip
from cropmarket.api.models import ChatRequest, ChatResponse
from cropmarket.exceptions import RateLimitError
from cropmarket.services.assistant import GREETING

router = APIRouter(prefix="/v1/assistant", tags=["assistant"])


@router.get("")
def assistant_info(response: Response) -> dict:
    response.headers["Cache-Control"] = "public, max-age=300"
    return {"greeting": GREETING}


@router.post("/chat", response_model=ChatResponse)
def chat(payload: ChatRequest, request: Request, response: Response) -> dict:
    """
    Answer a farming question.

    Provider failures return general guidance with ``fallback: true`` rather
    than an error status.
    """
    allowed, retry_after = get_rate_limiter(request).check_rate_limit(get_client_ip(request) or "unknown")
    if not allowed:
        raise RateLimitError(retry_after=retry_after)

    history = [turn.model_dump() for turn in payload.history]
    result = get_state(request).assistant.reply(payload.message, history)
    response.headers["Cache-Control"] = "no-store"
    return result.to_dict()
