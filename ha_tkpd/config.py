"""Configuration loader.

Reads environment variables and `.env` to build the settings for one run.
Command line options override these (see ``main.build_settings``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .utils import UsageError


def load_env_file(path: Optional[str] = None) -> None:
    """Load variables from a .env file (working directory unless given)."""
    load_dotenv(dotenv_path=path, override=False)


def _get_env(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    value = env.get(name)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


# ---- Defaults ----------------------------------------------------------------

DEFAULT_MQTT_HOST = "localhost"
DEFAULT_MQTT_PORT = 1883
DEFAULT_DISCOVERY_PREFIX = "homeassistant"
# Keepalive used by earlier releases; a run lasts a few seconds anyway.
DEFAULT_MQTT_KEEPALIVE = 10


@dataclass(frozen=True)
class Settings:
    """Everything a sync run needs besides the product URL."""

    mqtt_host: str = DEFAULT_MQTT_HOST
    mqtt_port: int = DEFAULT_MQTT_PORT
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None
    mqtt_keepalive: int = DEFAULT_MQTT_KEEPALIVE
    # Bound for CONNACK and for each PUBACK.
    mqtt_timeout_seconds: float = 10.0
    discovery_prefix: str = DEFAULT_DISCOVERY_PREFIX

    http_timeout_seconds: float = 10.0
    http_verify_tls: bool = True
    # 1 means no retry; the scheduler owns the retry cadence.
    fetch_attempts: int = 1

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            mqtt_host=_get_env(env, "MQTT_HOST", DEFAULT_MQTT_HOST),
            mqtt_port=_parse_int(_get_env(env, "MQTT_PORT"), DEFAULT_MQTT_PORT),
            mqtt_username=_get_env(env, "MQTT_USERNAME"),
            mqtt_password=_get_env(env, "MQTT_PASSWORD"),
            mqtt_keepalive=_parse_int(_get_env(env, "MQTT_KEEPALIVE"), DEFAULT_MQTT_KEEPALIVE),
            mqtt_timeout_seconds=_parse_float(_get_env(env, "MQTT_TIMEOUT_SECONDS"), 10.0),
            discovery_prefix=_get_env(env, "HA_DISCOVERY_PREFIX", DEFAULT_DISCOVERY_PREFIX),
            http_timeout_seconds=_parse_float(_get_env(env, "HTTP_TIMEOUT_SECONDS"), 10.0),
            http_verify_tls=_parse_bool(_get_env(env, "HTTP_VERIFY_TLS"), True),
            fetch_attempts=_parse_int(_get_env(env, "FETCH_ATTEMPTS"), 1),
            log_level=_get_env(env, "LOG_LEVEL", "INFO"),
        )

    @property
    def topic_prefix(self) -> str:
        return self.discovery_prefix.strip("/")

    def validate(self) -> None:
        """Validate settings; raise UsageError on the first problem."""
        if self.mqtt_password and not self.mqtt_username:
            raise UsageError(
                "MQTT Broker password is provided without any username. Aborting..."
            )
        if not 0 < self.mqtt_port < 65536:
            raise UsageError(f"MQTT port out of range: {self.mqtt_port}")
        if not self.topic_prefix:
            raise UsageError("Home Assistant discovery topic prefix must not be empty")
        if any(c in self.topic_prefix for c in "+#"):
            raise UsageError(
                f"Discovery topic prefix may not contain MQTT wildcards: {self.discovery_prefix!r}"
            )
        if self.mqtt_timeout_seconds <= 0 or self.http_timeout_seconds <= 0:
            raise UsageError("Timeouts must be positive")


__all__ = [
    "Settings",
    "load_env_file",
    "DEFAULT_MQTT_HOST",
    "DEFAULT_MQTT_PORT",
    "DEFAULT_DISCOVERY_PREFIX",
]
