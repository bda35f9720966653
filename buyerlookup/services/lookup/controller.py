"""Fetch -> parse -> swap -> re-query cycle for the lookup screen."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from buyerlookup.core.errors import FetchError, ParseError, RefreshInProgressError
from buyerlookup.core.logger import get_logger
from buyerlookup.core.profiles import DEFAULT_PROFILE, load_profile
from buyerlookup.services.feed import ExportFeedClient, FeedConfig, FeedSource
from buyerlookup.services.feed.config import apply_env_overrides

from .models import PURCHASER_EMAIL, Dataset, Query, QueryResult
from .parser import ParserOptions, parse_payload
from .query import search
from .store import DatasetStore

LOGGER = get_logger("lookup.refresh")

NOT_LOADED = "not yet loaded"


class RefreshState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    READY = "ready"
    FAILED = "failed"


BUSY_STATES = frozenset({RefreshState.FETCHING, RefreshState.PARSING})


@dataclass(frozen=True, slots=True)
class ControllerView:
    """What the presentation layer needs to render the lookup screen."""

    state: RefreshState
    captured_at: datetime | None
    error_message: str | None
    active_term: str | None
    last_result: QueryResult | None
    row_count: int

    @property
    def loaded_label(self) -> str:
        if self.captured_at is None:
            return NOT_LOADED
        return self.captured_at.astimezone().strftime("%H:%M:%S")

    @property
    def busy(self) -> bool:
        return self.state in BUSY_STATES


class RefreshController:
    """Drives one refresh cycle at a time and re-applies the active search.

    State machine: IDLE -> FETCHING -> PARSING -> READY -> IDLE, with FETCHING
    or PARSING falling into FAILED. A failed cycle leaves the previous dataset
    in the store. Retries are up to the caller.
    """

    def __init__(
        self,
        source: FeedSource,
        store: DatasetStore | None = None,
        *,
        parser_options: ParserOptions | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._source = source
        self._store = store if store is not None else DatasetStore()
        self._parser_options = parser_options or ParserOptions()
        self._logger = logger or LOGGER
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._cycle_gate = threading.Lock()
        self._state_lock = threading.RLock()
        self._state = RefreshState.IDLE
        self._error: FetchError | ParseError | None = None
        self._error_message: str | None = None
        self._active_query: Query | None = None
        self._last_result: QueryResult | None = None

    @classmethod
    def from_profile(cls, profile_name: str = DEFAULT_PROFILE) -> "RefreshController":
        """Build a controller wired to the HTTP feed described by ``profile_name``."""

        profile = load_profile(profile_name)
        feed_config = apply_env_overrides(FeedConfig.from_mapping(profile.feed))
        return cls(
            ExportFeedClient(feed_config),
            DatasetStore(),
            parser_options=ParserOptions.from_mapping(profile.parser),
        )

    @property
    def store(self) -> DatasetStore:
        return self._store

    @property
    def source(self) -> FeedSource:
        return self._source

    @property
    def state(self) -> RefreshState:
        with self._state_lock:
            return self._state

    @property
    def last_error(self) -> FetchError | ParseError | None:
        with self._state_lock:
            return self._error

    def refresh(self) -> ControllerView:
        """Run one fetch/parse/swap cycle.

        Fetch and parse failures are recorded (state FAILED, message set) and
        the previous dataset stays current.

        Raises:
            RefreshInProgressError: when a cycle is already running.
        """

        if not self._cycle_gate.acquire(blocking=False):
            self._logger.info("lookup.refresh rejected state=%s", self.state.value)
            raise RefreshInProgressError("A refresh is already in progress")
        try:
            self._run_cycle()
        finally:
            with self._state_lock:
                if self._state in BUSY_STATES or self._state is RefreshState.READY:
                    # Unexpected exception escaped the cycle.
                    self._state = RefreshState.FAILED
                    self._error_message = "Refresh aborted unexpectedly"
            self._cycle_gate.release()
        return self.view()

    def submit_query(self, raw_term: str, field: str = PURCHASER_EMAIL) -> QueryResult:
        """Search the current dataset and remember the term for later refreshes.

        Raises:
            EmptyQueryError: when ``raw_term`` is blank.
        """

        query = Query.from_raw(raw_term, field=field)
        result = search(self._store.current(), query)
        with self._state_lock:
            self._active_query = query
            self._last_result = result
        self._logger.info("lookup.query term=%s hits=%d", query.term, len(result))
        return result

    def clear_query(self) -> None:
        with self._state_lock:
            self._active_query = None
            self._last_result = None

    def view(self) -> ControllerView:
        dataset = self._store.current()
        with self._state_lock:
            return ControllerView(
                state=self._state,
                captured_at=None if dataset is None else dataset.captured_at,
                error_message=self._error_message if self._state is RefreshState.FAILED else None,
                active_term=None if self._active_query is None else self._active_query.term,
                last_result=self._last_result,
                row_count=0 if dataset is None else len(dataset),
            )

    def close(self) -> None:
        """Release the feed source when it holds a session."""

        closer = getattr(self._source, "close", None)
        if callable(closer):
            closer()

    # Internal helpers -------------------------------------------------

    def _set_state(self, state: RefreshState) -> None:
        with self._state_lock:
            previous = self._state
            self._state = state
        self._logger.debug("lookup.refresh %s -> %s", previous.value, state.value)

    def _fail(self, exc: FetchError | ParseError, message: str) -> None:
        with self._state_lock:
            self._state = RefreshState.FAILED
            self._error = exc
            self._error_message = message
        self._logger.warning(
            "lookup.refresh failed error=%s message=%s kept_generation=%d",
            type(exc).__name__,
            message,
            self._store.generation,
        )

    def _run_cycle(self) -> None:
        with self._state_lock:
            self._error = None
            self._error_message = None
        self._set_state(RefreshState.FETCHING)
        try:
            payload = self._source.fetch()
        except FetchError as exc:
            self._fail(exc, f"{exc}.")
            return

        self._set_state(RefreshState.PARSING)
        try:
            table = parse_payload(payload.content, self._parser_options)
        except ParseError as exc:
            self._fail(exc, f"CSV Parsing Error: {exc.reason}")
            return

        dataset = Dataset.from_table(table, captured_at=self._clock(), source=payload.url)
        self._set_state(RefreshState.READY)
        self._store.replace(dataset)
        with self._state_lock:
            active = self._active_query
        if active is not None:
            result = search(dataset, active)
            with self._state_lock:
                # A query submitted meanwhile owns the result.
                current = self._active_query is active
                if current:
                    self._last_result = result
            if current:
                self._logger.info("lookup.refresh requery term=%s hits=%d", active.term, len(result))
            else:
                self._logger.debug("lookup.refresh requery superseded term=%s", active.term)
        self._logger.info(
            "lookup.refresh ready rows=%d generation=%d", len(dataset), self._store.generation
        )
        self._set_state(RefreshState.IDLE)


__all__ = ["ControllerView", "RefreshController", "RefreshState", "NOT_LOADED"]
