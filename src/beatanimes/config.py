"""Runtime settings, read from the environment (and a local .env file)."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .cache import DEFAULT_TTLS, NAMESPACES
from .providers.auth import REFRESH_INTERVAL
from .providers.fetcher import DEFAULT_TIMEOUT, FallbackPolicy

DEFAULT_DOMAINS = (
    "https://anitaku.pe",
    "https://gogoanime3.co",
    "https://www.gogoanimes.watch",
)


def _number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _log_level() -> str:
    raw = os.getenv("BEATANIMES_LOG_LEVEL", "INFO").strip().upper()
    if not isinstance(logging.getLevelName(raw), int):
        raise ValueError(f"BEATANIMES_LOG_LEVEL must be a logging level name, got {raw!r}")
    return raw


@dataclass
class Settings:
    domains: tuple[str, ...] = DEFAULT_DOMAINS
    fallback: FallbackPolicy = FallbackPolicy.EXHAUSTIVE
    timeout: float = DEFAULT_TIMEOUT
    auth_key_url: str = ""
    auth_refresh: float = REFRESH_INTERVAL
    cache_ttls: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TTLS))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()

        raw_domains = os.getenv("BEATANIMES_DOMAINS", "")
        domains = tuple(d.strip() for d in raw_domains.split(",") if d.strip()) or DEFAULT_DOMAINS

        raw_policy = os.getenv("BEATANIMES_FALLBACK", FallbackPolicy.EXHAUSTIVE.value).strip().lower()
        try:
            fallback = FallbackPolicy(raw_policy)
        except ValueError:
            raise ValueError(f"BEATANIMES_FALLBACK must be 'sticky' or 'exhaustive', got {raw_policy!r}") from None

        ttls = {ns: _number(f"BEATANIMES_TTL_{ns.upper()}", DEFAULT_TTLS[ns]) for ns in NAMESPACES}

        return cls(
            domains=domains,
            fallback=fallback,
            timeout=_number("BEATANIMES_TIMEOUT", DEFAULT_TIMEOUT),
            auth_key_url=os.getenv("BEATANIMES_AUTH_KEY_URL", "").strip(),
            auth_refresh=_number("BEATANIMES_AUTH_TTL", REFRESH_INTERVAL),
            cache_ttls=ttls,
            log_level=_log_level(),
        )
