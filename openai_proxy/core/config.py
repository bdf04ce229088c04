"""Centralized configuration for the OpenAI-compatible proxy.

Configuration is resolved from three sources, highest precedence first:

1. **Environment variables**: ``TOKEN_URL``, ``TARGET_URL``, ``SERVER_PORT`` ...
2. **YAML config**: loaded via Hydra from ``openai_proxy/core/configs/``
3. **Built-in defaults**

The YAML profile is selected by ``OPENAI_PROXY_CONFIG_NAME`` (default:
``"gateway"``).

Usage::

    from openai_proxy.core.config import get_gateway_config

    cfg = get_gateway_config()
"""

from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

_CONFIG_DIR = str(Path(__file__).parent / "configs")

DEFAULT_CONFIG_NAME = "gateway"

# ---------------------------------------------------------------------------
# YAML loading via Hydra Compose API
# ---------------------------------------------------------------------------

def _load_yaml_config(config_name: str) -> dict[str, object]:
    """Load a YAML config via Hydra Compose API.

    Returns an empty dict if Hydra is unavailable or the config file is missing.
    """
    try:
        from hydra import compose, initialize_config_dir
        from omegaconf import OmegaConf

        abs_dir = os.path.abspath(_CONFIG_DIR)
        with initialize_config_dir(version_base=None, config_dir=abs_dir):
            cfg = compose(config_name=config_name)
        container = OmegaConf.to_container(cfg, resolve=True)
        if isinstance(container, dict):
            return container  # type: ignore[return-value]
        return {}
    except Exception:
        logger.debug("Failed to load YAML config %r, falling back to defaults", config_name)
        return {}


# ---------------------------------------------------------------------------
# Value helpers (env var wins over YAML)
# ---------------------------------------------------------------------------

def _raw(yaml: dict[str, object], key: str, env: str) -> object | None:
    env_val = os.environ.get(env)
    if env_val is not None and env_val.strip():
        return env_val.strip()
    return yaml.get(key)


def _str(yaml: dict[str, object], key: str, env: str, default: str = "") -> str:
    val = _raw(yaml, key, env)
    return str(val) if val is not None else default


def _int(yaml: dict[str, object], key: str, env: str, default: int) -> int:
    val = _raw(yaml, key, env)
    if val is None:
        return default
    try:
        return int(str(val).strip())
    except ValueError:
        logger.warning("Invalid integer for %s (%r), using default %d", env, val, default)
        return default


def _bool(yaml: dict[str, object], key: str, env: str, default: bool = False) -> bool:
    val = _raw(yaml, key, env)
    if val is None:
        return default
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _duration(yaml: dict[str, object], key: str, env: str, default: float) -> float:
    val = _raw(yaml, key, env)
    if val is None:
        return default
    try:
        return parse_duration(val)
    except ValueError:
        logger.warning("Invalid duration for %s (%r), using default %ss", env, val, default)
        return default


_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: object) -> float:
    """Parse a duration into seconds.

    Accepts bare numbers (seconds) and Go-style duration strings such as
    ``"500ms"``, ``"5s"`` or ``"1m30s"``.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART_RE.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if pos == 0 or pos != len(text):
                raise ValueError(f"not a duration: {value!r}") from None
    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")
    return seconds


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayConfig:
    """Resolved settings handed to the credential provider, dispatcher and web app."""

    # Auth (credential) endpoint
    auth_url: str = "http://localhost:8000/api/get-jwt"
    auth_method: str = "POST"
    auth_timeout_s: float = 5.0
    auth_token_type: str = "SESSION_TOKEN"
    # Backend endpoint
    backend_url: str = "http://localhost:8001/api/ai-call"
    backend_method: str = "POST"
    # Request body defaults
    default_user: str = "ai_model_user"
    default_max_tokens: int = 2000
    legacy_max_token_check: bool = False
    # Outbound header names
    trust_token_header: str = "X-Trust-Token"
    correlation_id_header: str = "x-correlation-id"
    user_session_id_header: str = "x-usersession-id"
    token_type_header: str = "Token_Type"
    token_type_value: str = "SESSION_TOKEN"
    # Server
    server_host: str = "0.0.0.0"
    server_port: int = 8080
    server_timeout_s: float = 10.0


def load_gateway_config(config_name: str = DEFAULT_CONFIG_NAME) -> GatewayConfig:
    """Build a :class:`GatewayConfig` from the named YAML profile and the environment."""
    yaml = _load_yaml_config(config_name)
    d = GatewayConfig()
    return GatewayConfig(
        auth_url=_str(yaml, "auth_url", "TOKEN_URL", d.auth_url),
        auth_method=_str(yaml, "auth_method", "TOKEN_METHOD", d.auth_method).upper(),
        auth_timeout_s=_duration(yaml, "auth_timeout", "TOKEN_TIMEOUT", d.auth_timeout_s),
        auth_token_type=_str(
            yaml, "auth_token_type", "TOKEN_PAYLOAD_TOKEN_TYPE", d.auth_token_type,
        ),
        backend_url=_str(yaml, "backend_url", "TARGET_URL", d.backend_url),
        backend_method=_str(yaml, "backend_method", "TARGET_METHOD", d.backend_method).upper(),
        default_user=_str(yaml, "default_user", "DEFAULT_USER", d.default_user),
        default_max_tokens=_int(
            yaml, "default_max_tokens", "DEFAULT_MAX_TOKEN", d.default_max_tokens,
        ),
        legacy_max_token_check=_bool(
            yaml, "legacy_max_token_check", "LEGACY_MAX_TOKEN_CHECK", d.legacy_max_token_check,
        ),
        trust_token_header=_str(
            yaml, "trust_token_header", "TRUST_TOKEN_HEADER", d.trust_token_header,
        ),
        correlation_id_header=_str(
            yaml, "correlation_id_header", "CORRELATION_ID_HEADER", d.correlation_id_header,
        ),
        user_session_id_header=_str(
            yaml, "user_session_id_header", "USER_SESSION_ID_HEADER", d.user_session_id_header,
        ),
        token_type_header=_str(
            yaml, "token_type_header", "TOKEN_TYPE_HEADER", d.token_type_header,
        ),
        token_type_value=_str(
            yaml, "token_type_value", "TOKEN_TYPE_VALUE", d.token_type_value,
        ),
        server_host=_str(yaml, "server_host", "SERVER_HOST", d.server_host),
        server_port=_int(yaml, "server_port", "SERVER_PORT", d.server_port),
        server_timeout_s=_duration(
            yaml, "server_timeout", "SERVER_TIMEOUT", d.server_timeout_s,
        ),
    )


@lru_cache(maxsize=1)
def get_gateway_config() -> GatewayConfig:
    """Return the gateway config for the profile named by ``OPENAI_PROXY_CONFIG_NAME``.

    The result is cached; call ``get_gateway_config.cache_clear()`` to re-read
    (useful in tests).
    """
    config_name = os.environ.get("OPENAI_PROXY_CONFIG_NAME", DEFAULT_CONFIG_NAME).strip()
    return load_gateway_config(config_name or DEFAULT_CONFIG_NAME)
