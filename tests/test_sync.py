from __future__ import annotations

import anyio
import pytest

from storefront.errors import StoreError
from storefront.persistence import DocumentStore
from storefront.subscription import Broadcaster
from storefront.sync import AsyncioScheduler, DocumentSync, LocalState


class FlakyStore(DocumentStore):
    def __init__(self, db_path) -> None:
        super().__init__(db_path)
        self.fail_writes = False
        self.writes: list[object] = []

    def set(self, key, value, merge=True) -> None:
        if self.fail_writes:
            raise StoreError("offline")
        self.writes.append(value)
        super().set(key, value, merge)


def _sync(store, state, scheduler, **kw) -> DocumentSync:
    return DocumentSync(store, "counter", state, encode=int, decode=int, scheduler=scheduler, **kw)


def test_local_state_notifies_and_accepts_updaters():
    state = LocalState(1)
    seen = []
    unsubscribe = state.observe(seen.append)

    state.set(2)
    state.set(lambda current: current * 10)
    unsubscribe()
    state.set(0)

    assert seen == [2, 20]
    assert state.value == 0


def test_broadcaster_isolates_failing_listeners():
    channel: Broadcaster[int] = Broadcaster("test")
    seen = []

    def broken(_value: int) -> None:
        raise RuntimeError("boom")

    channel.subscribe(broken)
    channel.subscribe(seen.append)
    channel.publish(5)

    assert seen == [5]
    assert len(channel) == 2


def test_missing_document_is_seeded(db_path, scheduler):
    store = FlakyStore(db_path)
    sync = _sync(store, LocalState(7), scheduler)

    sync.start()

    assert sync.initialized
    assert store.get("counter") == 7
    assert scheduler.pending == []


def test_writes_are_debounced(db_path, scheduler):
    store = FlakyStore(db_path)
    state = LocalState(0)
    saved = []
    sync = _sync(store, state, scheduler, on_saved=lambda: saved.append(True))
    sync.start()
    store.writes.clear()

    for value in (1, 2, 3):
        state.set(value)

    assert sync.pending
    assert len(scheduler.pending) == 1
    assert scheduler.pending[0].delay == pytest.approx(0.3)

    scheduler.run_all()

    assert store.writes == [3]
    assert store.get("counter") == 3
    assert saved == [True]
    assert not sync.pending


def test_changes_before_first_delivery_are_not_written(db_path, scheduler):
    store = FlakyStore(db_path)
    store.set("counter", 42)
    state = LocalState(0)
    sync = _sync(store, state, scheduler)

    state.set(1)
    assert scheduler.pending == []

    sync.start()
    assert state.value == 42


def test_remote_values_do_not_echo(db_path, scheduler):
    store = FlakyStore(db_path)
    state = LocalState(0)
    sync = _sync(store, state, scheduler)
    sync.start()

    store.set("counter", 99)

    assert state.value == 99
    assert scheduler.pending == []
    sync.stop()


def test_failed_write_keeps_local_state(db_path, scheduler):
    store = FlakyStore(db_path)
    state = LocalState(0)
    sync = _sync(store, state, scheduler)
    sync.start()
    store.fail_writes = True

    state.set(5)
    scheduler.run_all()

    assert state.value == 5
    assert isinstance(sync.last_error, StoreError)

    store.fail_writes = False
    state.set(6)
    scheduler.run_all()
    assert sync.last_error is None
    assert store.get("counter") == 6


def test_undecodable_document_falls_back_to_seed(db_path, scheduler):
    store = FlakyStore(db_path)
    store.set("counter", "not a number")
    state = LocalState(3)

    _sync(store, state, scheduler).start()

    assert state.value == 3


def test_stop_without_flush_drops_pending(db_path, scheduler):
    store = FlakyStore(db_path)
    state = LocalState(0)
    sync = _sync(store, state, scheduler)
    sync.start()
    state.set(8)

    sync.stop(flush=False)
    state.set(9)

    assert scheduler.pending == []
    assert store.get("counter") == 0


def test_asyncio_scheduler_runs_inline_without_loop():
    ran = []

    AsyncioScheduler().call_later(10, lambda: ran.append(True))

    assert ran == [True]


@pytest.mark.anyio
async def test_asyncio_scheduler_waits_on_running_loop():
    ran = []

    AsyncioScheduler().call_later(0.01, lambda: ran.append(True))
    assert ran == []
    await anyio.sleep(0.05)
    assert ran == [True]

    cancelled = AsyncioScheduler().call_later(0.01, lambda: ran.append(False))
    cancelled.cancel()
    await anyio.sleep(0.05)
    assert ran == [True]
