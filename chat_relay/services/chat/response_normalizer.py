"""
Response normalization

Reshapes an upstream completion document into the fixed schema callers rely
on. Upstream tagging is not trusted and nothing here may raise: the worst
case is an empty ``choices`` list.
"""
import itertools
import json
import math
import time
from typing import Any, Dict, Optional

COMPLETION_OBJECT = "chat.completion"
ID_PREFIX = "chatcmpl-"
USAGE_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens")

_sequence = itertools.count()


def generate_completion_id() -> str:
    return f"{ID_PREFIX}{int(time.time() * 1000)}-{next(_sequence)}"


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def _present(value: Any) -> bool:
    # NaN and Infinity cannot be written back out as JSON
    if isinstance(value, float):
        return math.isfinite(value)
    return value is not None


def _coerce_content(message: Dict[str, Any]) -> str:
    if "content" not in message:
        return ""
    content = message["content"]
    if isinstance(content, str):
        return content
    try:
        return json.dumps(content, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(content)


def normalize_choice(choice: Any) -> Dict[str, Any]:
    if not isinstance(choice, dict):
        choice = {}

    message = choice.get("message")
    if message is None:
        message = choice.get("delta")
    if not isinstance(message, dict):
        message = {}

    index = choice.get("index")
    finish_reason = choice.get("finish_reason")
    if not _present(finish_reason):
        finish_reason = choice.get("stop_reason")
    role = message.get("role")

    return {
        "index": int(index) if _is_number(index) else 0,
        "message": {
            "role": role if _present(role) and role else "assistant",
            "content": _coerce_content(message),
        },
        "finish_reason": finish_reason if _present(finish_reason) else "stop",
    }


def normalize_usage(usage: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(usage, dict):
        return None
    return {name: usage[name] if _is_number(usage.get(name)) else 0 for name in USAGE_FIELDS}


def normalize_completion(data: Any, default_model: str) -> Dict[str, Any]:
    """Normalize an upstream single-document response."""
    if not isinstance(data, dict):
        data = {}

    raw_choices = data.get("choices")
    choices = [normalize_choice(c) for c in raw_choices] if isinstance(raw_choices, list) else []

    document = {
        "id": data.get("id") if _present(data.get("id")) else generate_completion_id(),
        "object": COMPLETION_OBJECT,
        "created": data.get("created") if _present(data.get("created")) else int(time.time()),
        "model": data.get("model") if _present(data.get("model")) else default_model,
        "choices": choices,
    }

    usage = normalize_usage(data.get("usage"))
    if usage is not None:
        document["usage"] = usage
    return document
