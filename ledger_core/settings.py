"""Process-wide configuration, built once at startup and passed explicitly."""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ConfigurationError

ENV_PREFIX = "BUDGET_TRACKER_"
DEV_ENVIRONMENTS = {"dev", "development", "test"}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    token_lifetime: timedelta = timedelta(hours=1)
    bcrypt_rounds: int = 12
    default_timezone: str = "UTC"
    data_dir: Path = Path("data")
    env: str = "prod"
    allowed_origins: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ConfigurationError("secret_key must not be empty")
        if self.token_lifetime <= timedelta(0):
            raise ConfigurationError("token_lifetime must be positive")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ConfigurationError("bcrypt_rounds must be between 4 and 31")
        try:
            ZoneInfo(self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown time zone: {self.default_timezone!r}") from exc

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.default_timezone)

    @property
    def is_dev(self) -> bool:
        return self.env in DEV_ENVIRONMENTS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            if value is None or not value.strip():
                return None
            return value.strip()

        env_name = (get("ENV") or "prod").lower()
        secret_key = get("SECRET_KEY")
        if secret_key is None:
            if env_name not in DEV_ENVIRONMENTS:
                raise ConfigurationError(f"{ENV_PREFIX}SECRET_KEY must be set")
            # Tokens will not survive a restart in development.
            secret_key = secrets.token_urlsafe(32)

        origins = get("ALLOWED_ORIGINS")
        return cls(
            secret_key=secret_key,
            token_lifetime=timedelta(seconds=_int_setting(get("TOKEN_TTL"), "TOKEN_TTL", 3600)),
            bcrypt_rounds=_int_setting(get("BCRYPT_ROUNDS"), "BCRYPT_ROUNDS", 12),
            default_timezone=get("TIMEZONE") or "UTC",
            data_dir=Path(get("DATA_DIR") or "data"),
            env=env_name,
            allowed_origins=tuple(
                origin.strip() for origin in (origins or "").split(",") if origin.strip()
            ),
        )


def _int_setting(raw: Optional[str], name: str, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer") from exc
