"""
Payload classification

Decides once, at the edge, what shape a decoded request body has. Everything
downstream works on the returned variant, never on the raw body.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class ChatPayload:
    model: Optional[str] = None
    messages: List[Any] = field(default_factory=list)
    stream: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"model": self.model, "messages": list(self.messages), "stream": self.stream}


@dataclass
class RpcRequest:
    method: str
    params: Any = None
    id: Union[str, int, float, None] = None
    jsonrpc: str = "2.0"
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InvalidPayload:
    reason: str


ClassifiedPayload = Union[ChatPayload, RpcRequest, InvalidPayload]


def is_rpc_request(body: Any) -> bool:
    return isinstance(body, dict) and body.get("jsonrpc") == "2.0" and "method" in body


def is_chat_payload(body: Any) -> bool:
    return isinstance(body, dict) and isinstance(body.get("messages"), list)


def classify_payload(body: Any) -> ClassifiedPayload:
    """
    Classify a decoded JSON body.

    JSON-RPC is checked first, so a body that looks like both is RPC. Message
    elements are not inspected here. Never raises.
    """
    if is_rpc_request(body):
        method = body.get("method")
        return RpcRequest(
            method=method if isinstance(method, str) else str(method),
            params=body.get("params"),
            id=body.get("id"),
            raw=dict(body),
        )

    if is_chat_payload(body):
        model = body.get("model")
        return ChatPayload(
            model=model if isinstance(model, str) else None,
            messages=list(body["messages"]),
            stream=body.get("stream") is True,
        )

    if not isinstance(body, dict):
        return InvalidPayload(reason=f"expected a JSON object, got {type(body).__name__}")
    return InvalidPayload(reason="'messages' array is required")
