"""Local state holders and the debounced process that syncs them to the document store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Generic, Protocol, TypeVar

from storefront.config import SYNC_DEBOUNCE_SECONDS
from storefront.errors import StoreError
from storefront.persistence import DocumentStore
from storefront.subscription import Broadcaster, Unsubscribe

T = TypeVar("T")

logger = logging.getLogger(__name__)


class LocalState(Generic[T]):
    """In-memory value with synchronous change notification and no I/O."""

    def __init__(self, initial: T, name: str = "") -> None:
        self._value = initial
        self._changes: Broadcaster[T] = Broadcaster(name)

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T | Callable[[T], T]) -> None:
        if callable(value):
            value = value(self._value)
        self._value = value
        self._changes.publish(value)

    def observe(self, listener: Callable[[T], None]) -> Unsubscribe:
        return self._changes.subscribe(listener)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class _DoneHandle:
    def cancel(self) -> None:
        return


class AsyncioScheduler:
    """Schedule on the running event loop; run immediately when none is running."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback()
            return _DoneHandle()
        return loop.call_later(delay, callback)


class DocumentSync(Generic[T]):
    """
    Mirror one LocalState to one store document.

    Remote values are applied to the local state without being written back.
    Local changes are written after `delay` seconds of quiet, and only once the
    first remote delivery has happened so seed values never clobber stored ones.
    """

    def __init__(
        self,
        store: DocumentStore,
        key: str,
        state: LocalState[T],
        *,
        encode: Callable[[T], Any],
        decode: Callable[[Any], T],
        scheduler: Scheduler | None = None,
        delay: float = SYNC_DEBOUNCE_SECONDS,
        on_saved: Callable[[], None] | None = None,
    ) -> None:
        self.store = store
        self.key = key
        self.state = state
        self.encode = encode
        self.decode = decode
        self.scheduler = scheduler or AsyncioScheduler()
        self.delay = delay
        self.on_saved = on_saved
        self.initialized = False
        self.last_error: Exception | None = None
        self._initial = state.value
        self._applying_remote = False
        self._pending: TimerHandle | None = None
        self._unsubscribe_local = state.observe(self._on_local_change)
        self._unsubscribe_remote: Unsubscribe | None = None

    def start(self) -> None:
        self._unsubscribe_remote = self.store.subscribe(self.key, self._on_remote_value, self._on_remote_error)

    def stop(self, flush: bool = True) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
            if flush:
                self._write()
        if self._unsubscribe_remote is not None:
            self._unsubscribe_remote()
            self._unsubscribe_remote = None
        self._unsubscribe_local()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def _on_remote_value(self, raw: Any) -> None:
        if raw is None:
            # Document missing: keep the seed visible and create it.
            self._set_remote(self._initial)
            self.initialized = True
            try:
                self.store.set(self.key, self.encode(self._initial))
            except StoreError as exc:
                self.last_error = exc
            return
        try:
            value = self.decode(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("undecodable document key=%s error=%r", self.key, exc)
            value = self._initial
        self._set_remote(value)
        self.initialized = True

    def _on_remote_error(self, exc: Exception) -> None:
        logger.error("document subscription failed key=%s error=%r", self.key, exc)
        self.last_error = exc
        if not self.initialized:
            self._set_remote(self._initial)
        self.initialized = True

    def _set_remote(self, value: T) -> None:
        self._applying_remote = True
        try:
            self.state.set(value)
        finally:
            self._applying_remote = False

    def _on_local_change(self, _value: T) -> None:
        if self._applying_remote or not self.initialized:
            return
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self.scheduler.call_later(self.delay, self._flush)

    def _flush(self) -> None:
        self._pending = None
        self._write()

    def _write(self) -> None:
        try:
            self.store.set(self.key, self.encode(self.state.value))
        except StoreError as exc:
            # Local state is not rolled back; the failure stays inspectable.
            self.last_error = exc
            return
        self.last_error = None
        if self.on_saved is not None:
            self.on_saved()
