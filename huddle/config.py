"""Runtime configuration for the Huddle backend."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .seed import resolve_seed_path
from .store import DEFAULT_FLUSH_DELAY

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5500


def resolve_data_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the JSON data file."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "data.json").resolve(strict=False)


def _parse_port(value: Optional[str]) -> int:
    if value is None or not value.strip():
        return DEFAULT_PORT
    port = int(value)
    if port < 1 or port > 65535:
        raise ValueError("HUDDLE_PORT must be between 1 and 65535")
    return port


def _parse_flush_delay(value: Optional[str]) -> float:
    if value is None or not value.strip():
        return DEFAULT_FLUSH_DELAY
    millis = int(value)
    if millis < 0:
        raise ValueError("HUDDLE_FLUSH_DELAY_MS must not be negative")
    return millis / 1000


def _parse_origins(value: Optional[str]) -> Tuple[str, ...]:
    if value is None:
        return ("*",)
    origins = tuple(origin.strip() for origin in value.split(",") if origin.strip())
    return origins or ("*",)


@dataclass(frozen=True)
class Settings:
    """Values resolved once at startup from ``HUDDLE_*`` environment variables."""

    data_path: Path
    seed_path: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    flush_delay: float = DEFAULT_FLUSH_DELAY
    cors_origins: Tuple[str, ...] = field(default=("*",))


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        data_path=resolve_data_path(env.get("HUDDLE_DATA_PATH")),
        seed_path=resolve_seed_path(env.get("HUDDLE_SEED_PATH")),
        host=(env.get("HUDDLE_HOST") or DEFAULT_HOST).strip() or DEFAULT_HOST,
        port=_parse_port(env.get("HUDDLE_PORT")),
        flush_delay=_parse_flush_delay(env.get("HUDDLE_FLUSH_DELAY_MS")),
        cors_origins=_parse_origins(env.get("HUDDLE_CORS_ORIGINS")),
    )


__all__ = ["DEFAULT_HOST", "DEFAULT_PORT", "Settings", "load_settings", "resolve_data_path"]
