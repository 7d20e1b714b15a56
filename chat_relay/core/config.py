import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

import yaml

from .logging import logger


DEFAULT_CONFIG_PATH = os.path.join("config", "gateway.yaml")

# Environment variable -> GatewayConfig field
ENV_OVERRIDES = {
    "UPSTREAM_CHAT_URL": "upstream_url",
    "RPC_FORWARD_URL": "rpc_forward_url",
    "UPSTREAM_API_KEY": "api_key",
    "DEFAULT_CHAT_MODEL": "default_model",
    "PORT": "port",
    "EXPECTED_CLIENT": "expected_client",
    "UPSTREAM_TIMEOUT_SECONDS": "upstream_timeout_seconds",
    "HEARTBEAT_INTERVAL_SECONDS": "heartbeat_interval_seconds",
    "DISCONNECT_POLL_SECONDS": "disconnect_poll_seconds",
    "MAX_BODY_BYTES": "max_body_bytes",
    "LOG_LEVEL": "log_level",
}

# Earlier deployments used these names; the ENV_OVERRIDES names win when both are set
ENV_ALIASES = {
    "VENICE_CHAT_URL": "upstream_url",
    "VENICE_API_KEY": "api_key",
}


@dataclass(frozen=True)
class GatewayConfig:
    """Process-wide settings, read once at startup and never mutated."""

    upstream_url: str = "https://api.venice.ai/api/v1/chat/completions"
    rpc_forward_url: Optional[str] = None
    api_key: str = ""
    default_model: str = "venice-uncensored"
    port: int = 10000
    expected_client: str = "elevenlabs"
    upstream_timeout_seconds: float = 30.0
    heartbeat_interval_seconds: float = 15.0
    disconnect_poll_seconds: float = 0.5
    max_body_bytes: int = 10 * 1024 * 1024
    log_level: str = "INFO"

    def __post_init__(self):
        if not self.upstream_url:
            raise ValueError("upstream_url must not be empty")
        if not self.default_model:
            raise ValueError("default_model must not be empty")
        for name in ("upstream_timeout_seconds", "heartbeat_interval_seconds",
                     "disconnect_poll_seconds", "max_body_bytes", "port"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in ("port", "max_body_bytes"):
        return int(value)
    if name in ("upstream_timeout_seconds", "heartbeat_interval_seconds", "disconnect_poll_seconds"):
        return float(value)
    if name == "rpc_forward_url":
        return str(value) or None
    return str(value)


def _load_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.debug(f"Configuration file not found: {path}, using defaults and environment", config_path=path)
        return {}

    section = data.get("gateway", data) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return section


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> GatewayConfig:
    """
    Build the gateway configuration.

    Values come from an optional YAML file (``CONFIG_PATH`` or
    ``config/gateway.yaml``), then environment variables override them.

    Raises:
        ValueError: When a value cannot be parsed or fails validation
    """
    env = os.environ if environ is None else environ
    path = path or env.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH

    known = {f.name for f in fields(GatewayConfig)}
    values: Dict[str, Any] = {}

    for key, value in _load_yaml(path).items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key '{key}'", config_path=path)
            continue
        if value is not None:
            values[key] = _coerce(key, value)

    for env_name, field_name in list(ENV_ALIASES.items()) + list(ENV_OVERRIDES.items()):
        if env_name in env and env[env_name] != "":
            values[field_name] = _coerce(field_name, env[env_name])

    config = GatewayConfig(**values)

    logger.info("Gateway configuration loaded", config={
        "config_path": path,
        "upstream_url": config.upstream_url,
        "rpc_forwarding_enabled": config.rpc_forward_url is not None,
        "api_key_configured": bool(config.api_key),
        "default_model": config.default_model,
        "upstream_timeout_seconds": config.upstream_timeout_seconds,
        "heartbeat_interval_seconds": config.heartbeat_interval_seconds,
        "max_body_bytes": config.max_body_bytes,
    })
    return config
