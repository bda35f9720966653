"""Configuration loader for the export feed client."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

from buyerlookup.core.errors import ConfigError
from buyerlookup.core.profiles import DEFAULT_PROFILE, expand_env, load_profile

DEFAULT_TIMEOUT = 20.0
DEFAULT_USER_AGENT = "Mozilla/5.0"
CACHE_BUST_PARAM = "t"

FEED_URL_ENV = "BUYERLOOKUP_FEED_URL"
TIMEOUT_ENV = "BUYERLOOKUP_TIMEOUT_SEC"
USER_AGENT_ENV = "BUYERLOOKUP_USER_AGENT"


@dataclass(slots=True, frozen=True)
class FeedConfig:
    """Resolved settings for retrieving the sales export."""

    url: str
    timeout_sec: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    cache_bust: bool = True
    verify_tls: bool = True
    trust_env: bool = False
    proxies: Mapping[str, str] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FeedConfig":
        """Create a configuration instance from a profile ``feed`` section."""

        url = data.get("url")
        if url is None or (isinstance(url, str) and not url.strip()):
            raise ConfigError("Missing required feed config value: url")

        proxies_raw = data.get("proxies")
        proxies: Mapping[str, str] | None = None
        if isinstance(proxies_raw, Mapping):
            proxies = {str(k): expand_env(v) for k, v in proxies_raw.items()}

        try:
            timeout = float(data.get("timeout_sec", DEFAULT_TIMEOUT))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"feed.timeout_sec must be a number: {data.get('timeout_sec')!r}") from exc

        return cls(
            url=expand_env(str(url)).strip(),
            timeout_sec=timeout,
            user_agent=str(expand_env(data.get("user_agent", DEFAULT_USER_AGENT))),
            cache_bust=bool(data.get("cache_bust", True)),
            verify_tls=bool(data.get("verify_tls", True)),
            trust_env=bool(data.get("trust_env", False)),
            proxies=proxies,
        )


def _read_env(key: str) -> str | None:
    value = os.getenv(key)
    if value is None:
        return None
    return value.strip() or None


def _read_env_float(key: str) -> float | None:
    value = _read_env(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"Environment variable {key} must be a number") from exc


def apply_env_overrides(config: FeedConfig) -> FeedConfig:
    """Return ``config`` with any ``BUYERLOOKUP_*`` environment overrides applied."""

    url = _read_env(FEED_URL_ENV)
    if url is not None:
        config = replace(config, url=url)
    timeout = _read_env_float(TIMEOUT_ENV)
    if timeout is not None:
        config = replace(config, timeout_sec=timeout)
    user_agent = _read_env(USER_AGENT_ENV)
    if user_agent is not None:
        config = replace(config, user_agent=user_agent)
    return config


def resolve_config(profile: str | None = None) -> FeedConfig:
    """Resolve feed configuration from a profile plus environment overrides."""

    env_url = _read_env(FEED_URL_ENV)
    if profile is None and env_url:
        return apply_env_overrides(FeedConfig(url=env_url))
    selected = load_profile(profile or DEFAULT_PROFILE)
    return apply_env_overrides(FeedConfig.from_mapping(selected.feed))


__all__ = [
    "FeedConfig",
    "CACHE_BUST_PARAM",
    "FEED_URL_ENV",
    "TIMEOUT_ENV",
    "USER_AGENT_ENV",
    "apply_env_overrides",
    "resolve_config",
]
