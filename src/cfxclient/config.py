"""
Client configuration.

Values come from environment variables, optionally seeded from
~/.cfxclient/.env. Explicit keyword overrides win over the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .errors import ValidationError

CFXCLIENT_DIR = Path.home() / ".cfxclient"
CFXCLIENT_ENV = CFXCLIENT_DIR / ".env"

DEFAULT_RPC_URL = "http://localhost:12537"
DEFAULT_CHAIN_ID = 0
DEFAULT_DEPLOY_TIMEOUT = 3600.0
DEFAULT_POLL_INTERVAL = 2.0


@dataclass(frozen=True)
class ClientConfig:
    node_url: str = DEFAULT_RPC_URL
    retry_count: int = 0
    retry_interval: Optional[float] = None
    request_timeout: float = 30.0
    chain_id: int = DEFAULT_CHAIN_ID
    deploy_timeout: float = DEFAULT_DEPLOY_TIMEOUT
    deploy_poll_interval: float = DEFAULT_POLL_INTERVAL

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None, **overrides: Any) -> "ClientConfig":
        """
        Build a config from the environment.

        Args:
            env_path: .env file to load first (default: ~/.cfxclient/.env)
            **overrides: Field values that take precedence

        Raises:
            ValidationError: If a variable holds a malformed number
        """
        env_path = env_path or CFXCLIENT_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        config = cls(
            node_url=os.environ.get("CFX_RPC_URL", DEFAULT_RPC_URL),
            retry_count=_env_number("CFX_RETRY_COUNT", int, 0),
            retry_interval=_env_number("CFX_RETRY_INTERVAL", float, None),
            request_timeout=_env_number("CFX_REQUEST_TIMEOUT", float, 30.0),
            chain_id=_env_number("CFX_CHAIN_ID", int, DEFAULT_CHAIN_ID),
            deploy_timeout=_env_number("CFX_DEPLOY_TIMEOUT", float, DEFAULT_DEPLOY_TIMEOUT),
            deploy_poll_interval=_env_number("CFX_DEPLOY_POLL_INTERVAL", float, DEFAULT_POLL_INTERVAL),
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(config, **overrides)


def _env_number(name: str, kind, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return kind(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be a number, got {raw!r}") from exc
