# telemetry/settings.py
"""
Client settings, read from the environment (and a .env file if present).

    SIM_HOST                 simulator host            (127.0.0.1)
    SIM_PORT                 simulator TCP port        (1534)
    SIM_READ_SIZE            bytes per socket read     (1024)
    SIM_CONNECT_TIMEOUT      seconds                   (5.0)
    SIM_STRICT               stop on first bad message (false)
    SIM_VERBOSE              render extra fields       (false)
    SIM_MAX_DOCUMENT_BYTES   drop larger objects       (unbounded)
    SIM_EVENT_VOCABULARY     extra event names file    (none)
    LOG_LEVEL                logging level             (WARNING)
"""
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 1534
DEFAULT_READ_SIZE = 1024

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(env: Mapping[str, str], name: str, default: Optional[int], minimum: int = 1) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass
class ClientSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    read_size: int = DEFAULT_READ_SIZE
    connect_timeout: float = 5.0
    strict: bool = False
    verbose: bool = False
    max_document_bytes: Optional[int] = None
    event_vocabulary: Optional[str] = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "ClientSettings":
        """
        Build settings from ``env`` (os.environ by default).

        When reading os.environ, a .env file is loaded first unless
        ``dotenv`` is False. Raises ValueError naming the bad variable.
        """
        if env is None:
            if dotenv:
                load_dotenv()
            env = os.environ

        log_level = env.get("LOG_LEVEL", "WARNING").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"LOG_LEVEL is not a logging level: {log_level!r}")

        return cls(
            host=env.get("SIM_HOST", DEFAULT_HOST).strip() or DEFAULT_HOST,
            port=_env_int(env, "SIM_PORT", DEFAULT_PORT),
            read_size=_env_int(env, "SIM_READ_SIZE", DEFAULT_READ_SIZE),
            connect_timeout=_env_float(env, "SIM_CONNECT_TIMEOUT", 5.0),
            strict=_env_bool(env, "SIM_STRICT", False),
            verbose=_env_bool(env, "SIM_VERBOSE", False),
            max_document_bytes=_env_int(env, "SIM_MAX_DOCUMENT_BYTES", None, minimum=2),
            event_vocabulary=env.get("SIM_EVENT_VOCABULARY") or None,
            log_level=log_level,
        )
