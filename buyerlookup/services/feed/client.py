"""HTTP client retrieving the sales export."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

import requests
from requests.exceptions import RequestException, Timeout

from buyerlookup.core.errors import FetchError
from buyerlookup.core.logger import get_logger

from .config import CACHE_BUST_PARAM, FeedConfig
from .models import FeedPayload

LOGGER = get_logger("feed")


class ExportFeedClient:
    """Single-shot GET of the export file; retries are left to the caller."""

    def __init__(
        self,
        config: FeedConfig,
        *,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.verify = config.verify_tls
        self._session.trust_env = config.trust_env
        if config.proxies:
            self._session.proxies.update(config.proxies)
        self._session.headers["User-Agent"] = config.user_agent
        self._logger = logger or LOGGER
        self._clock = clock

    @property
    def config(self) -> FeedConfig:
        return self._config

    @property
    def session(self) -> requests.Session:
        return self._session

    def fetch(self) -> FeedPayload:
        """Download the export, raising ``FetchError`` on transport or status failures."""

        url = self._config.url
        params: dict[str, str] = {}
        if self._config.cache_bust:
            params[CACHE_BUST_PARAM] = str(int(self._clock() * 1000))

        self._logger.debug("feed.http request url=%s params=%s", url, ",".join(params))
        try:
            response = self._session.get(url, params=params, timeout=self._config.timeout_sec)
        except Timeout as exc:
            self._logger.warning("feed.http timeout url=%s", url, exc_info=exc)
            raise FetchError(f"Failed to fetch CSV file: request timed out after {self._config.timeout_sec}s") from exc
        except RequestException as exc:
            self._logger.warning(
                "feed.http connection_error url=%s error=%s", url, type(exc).__name__, exc_info=exc
            )
            raise FetchError(f"Failed to fetch CSV file: {type(exc).__name__}") from exc

        status = response.status_code
        reason = response.reason or ""
        if not 200 <= status < 300:
            self._logger.warning("feed.http bad_status url=%s status=%d reason=%s", url, status, reason)
            raise FetchError(
                f"Failed to fetch CSV file: {status} {reason}".rstrip(),
                status_code=status,
                reason=reason,
            )

        content = response.content
        self._logger.info("feed.http fetched url=%s status=%d bytes=%d", url, status, len(content))
        return FeedPayload(
            content=content,
            status_code=status,
            url=url,
            fetched_at=datetime.now(timezone.utc),
        )

    def close(self) -> None:
        """Release the underlying HTTP session."""

        self._session.close()

    def __enter__(self) -> "ExportFeedClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


__all__ = ["ExportFeedClient"]
