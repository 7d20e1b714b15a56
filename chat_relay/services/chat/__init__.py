"""
Chat request and response shaping.

The orchestration (``chat_service``) and the streaming relay (``stream_relay``)
depend on the upstream dispatcher and are imported from their modules directly.
"""

from .classifier import ChatPayload, RpcRequest, InvalidPayload, classify_payload
from .request_normalizer import normalize_chat_payload
from .response_normalizer import normalize_completion

__all__ = [
    'ChatPayload',
    'RpcRequest',
    'InvalidPayload',
    'classify_payload',
    'normalize_chat_payload',
    'normalize_completion'
]
