from typing import Any

from .classifier import ChatPayload


def normalize_chat_payload(payload: Any, default_model: str) -> ChatPayload:
    """
    Produce the canonical upstream request.

    Accepts a classified ChatPayload or any raw value. ``model`` falls back to
    ``default_model``, ``messages`` to an empty list, and ``stream`` is true
    only for an explicit boolean ``True`` (the string ``"true"`` does not
    count). Total and idempotent.
    """
    if isinstance(payload, ChatPayload):
        model, messages, stream = payload.model, payload.messages, payload.stream
    elif isinstance(payload, dict):
        model, messages, stream = payload.get("model"), payload.get("messages"), payload.get("stream")
    else:
        model, messages, stream = None, None, None

    return ChatPayload(
        model=model if isinstance(model, str) and model else default_model,
        messages=list(messages) if isinstance(messages, list) else [],
        stream=stream is True,
    )
