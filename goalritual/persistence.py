"""Persistence collaborator and the debounced writer that feeds it.

A backend stores whole JSON documents by key and tells subscribers when a
document changes. The core reads once at startup (``load_state``) and writes
after every committed mutation through ``DebouncedWriter``.
"""

from __future__ import annotations

import contextlib
import copy
import json
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from goalritual.fileio import read_json, write_json_atomic
from goalritual.models import AppState
from goalritual.store import Store
from goalritual.workspace import STATE_KEY, state_dir

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, Any], None]


class Backend(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, document: Any) -> None: ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]: ...


class _Notifier:
    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, key: str, document: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, copy.deepcopy(document))
            except Exception:
                logger.exception("Change listener for %s failed", key)


class MemoryBackend(_Notifier):
    """Dict-backed store, used in tests and as a stand-in for a sync service."""

    def __init__(self, documents: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._documents: dict[str, Any] = copy.deepcopy(documents or {})
        self.writes = 0

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._documents.get(key))

    def set(self, key: str, document: Any) -> None:
        self._documents[key] = copy.deepcopy(document)
        self.writes += 1
        self._emit(key, document)


class FileBackend(_Notifier):
    """One atomic JSON file per key under <root>/state/."""

    def __init__(self, root: Path | None = None) -> None:
        super().__init__()
        self.directory = state_dir(root)
        self._mtimes: dict[str, float] = {}

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Any:
        path = self.path_for(key)
        if path.exists():
            self._mtimes[key] = path.stat().st_mtime
        return read_json(path)

    def set(self, key: str, document: Any) -> None:
        path = self.path_for(key)
        write_json_atomic(path, document)
        self._mtimes[key] = path.stat().st_mtime
        self._emit(key, document)

    def check_for_changes(self, key: str) -> bool:
        """Notify subscribers if another process rewrote the file since we last saw it."""
        path = self.path_for(key)
        if not path.exists():
            return False
        mtime = path.stat().st_mtime
        if self._mtimes.get(key) == mtime:
            return False
        self._mtimes[key] = mtime
        try:
            document = read_json(path)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring unreadable external change to %s: %s", path, e)
            return False
        self._emit(key, document)
        return True


# ── Loading ───────────────────────────────────────────────────


def parse_state(document: Any) -> AppState:
    """Turn a stored document into AppState, discarding it if it is malformed."""
    if document is None:
        return AppState()
    if not isinstance(document, dict):
        logger.warning("Discarding persisted state: expected an object, got %s", type(document).__name__)
        return AppState()
    try:
        return AppState.from_dict(document)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning("Discarding malformed persisted state: %s", e)
        return AppState()


def load_state(backend: Backend, key: str = STATE_KEY) -> AppState:
    """Read the state document once at startup. Never raises for bad data."""
    try:
        document = backend.get(key)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Discarding unparseable persisted state %s: %s", key, e)
        return AppState()
    return parse_state(document)


# ── Debounced writer ──────────────────────────────────────────


class DebouncedWriter:
    """Write the store's state to a backend, coalescing bursts of changes.

    Every change restarts the timer, so a burst within ``delay`` seconds
    produces a single write of the last state. Change notifications from the
    backend that carry a different document replace the store's state.
    """

    def __init__(self, store: Store, backend: Backend, key: str = STATE_KEY, delay: float = 1.0) -> None:
        self.store = store
        self.backend = backend
        self.key = key
        self.delay = delay
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending: dict[str, Any] | None = None
        self._last_written: dict[str, Any] | None = None
        self._unsubscribe_store = store.subscribe(self._on_state)
        self._unsubscribe_backend = backend.subscribe(self._on_remote)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def _on_state(self, state: AppState) -> None:
        with self._lock:
            self._pending = state.to_dict()
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Write the pending state now. Returns True if a write happened."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            document, self._pending = self._pending, None
            if document is None or document == self._last_written:
                return False
            previous, self._last_written = self._last_written, document
        try:
            self.backend.set(self.key, document)
        except Exception:
            logger.exception("Failed to persist %s", self.key)
            with self._lock:
                if self._last_written is document:
                    self._last_written = previous
            return False
        logger.debug("Persisted %s", self.key)
        return True

    def _on_remote(self, key: str, document: Any) -> None:
        if key != self.key or document == self._last_written:
            return
        state = parse_state(document)
        with self._lock:
            self._last_written = state.to_dict()
        logger.info("Applying external change to %s", key)
        self.store.replace(state)

    def close(self) -> None:
        self.flush()
        self._unsubscribe_store()
        self._unsubscribe_backend()
