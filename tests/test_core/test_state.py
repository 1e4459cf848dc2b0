"""Tests for the dimension state store."""

import threading

import pytest

from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.state import StateStore
from dimension_gate.storage import MemoryStateBackend


class TestDefaults:
    """Initial state."""

    @pytest.mark.unit
    def test_every_dimension_open_by_default(self):
        store = StateStore()

        assert store.snapshot() == {d: True for d in Dimension}

    @pytest.mark.unit
    def test_initial_overrides_defaults(self):
        store = StateStore(initial={Dimension.END: False})

        assert store.is_open(Dimension.OVERWORLD) is True
        assert store.is_open(Dimension.END) is False
        assert store.status_label(Dimension.END) == "Closed"
        assert store.status_label(Dimension.NETHER) == "Open"


class TestSetOpen:
    """Tests for set_open() and its shortcuts."""

    @pytest.mark.unit
    def test_change_persists_and_records(self, store, backend, metrics):
        changed = store.set_open(Dimension.NETHER, False)

        assert changed is True
        assert store.is_open(Dimension.NETHER) is False
        assert backend.saves[-1][Dimension.NETHER] is False
        assert metrics.snapshot().close_count(Dimension.NETHER) == 1

    @pytest.mark.unit
    def test_same_value_is_noop(self, store, backend, metrics):
        changed = store.set_open(Dimension.NETHER, True)

        assert changed is False
        assert backend.saves == []
        snapshot = metrics.snapshot()
        assert snapshot.open_count(Dimension.NETHER) == 0
        assert snapshot.close_count(Dimension.NETHER) == 0

    @pytest.mark.unit
    def test_open_and_close_shortcuts(self, store):
        assert store.close(Dimension.END) is True
        assert store.close(Dimension.END) is False
        assert store.open(Dimension.END) is True
        assert store.is_open(Dimension.END) is True

    @pytest.mark.unit
    def test_saved_state_covers_every_dimension(self, store, backend):
        store.close(Dimension.END)

        assert set(backend.saves[-1]) == set(Dimension)

    @pytest.mark.unit
    def test_persist_failure_keeps_memory_state(self, store, backend, metrics):
        backend.fail_saves = True

        changed = store.set_open(Dimension.NETHER, False)

        assert changed is True
        assert store.is_open(Dimension.NETHER) is False
        assert metrics.snapshot().close_count(Dimension.NETHER) == 1

    @pytest.mark.unit
    def test_os_error_on_save_is_logged_not_raised(self, metrics):
        class DiskFullBackend(MemoryStateBackend):
            def save(self, state):
                raise OSError("disk full")

        store = StateStore(DiskFullBackend(), metrics=metrics)

        assert store.set_open(Dimension.NETHER, False) is True
        assert store.is_open(Dimension.NETHER) is False
        assert metrics.snapshot().close_count(Dimension.NETHER) == 1

    @pytest.mark.unit
    def test_without_backend(self):
        store = StateStore()
        assert store.close(Dimension.NETHER) is True
        assert store.load() == {
            Dimension.OVERWORLD: True,
            Dimension.NETHER: False,
            Dimension.END: True,
        }

    @pytest.mark.unit
    def test_concurrent_toggles_change_exactly_once(self, store, metrics):
        results = []
        barrier = threading.Barrier(16)

        def worker():
            barrier.wait()
            results.append(store.set_open(Dimension.NETHER, False))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert metrics.snapshot().close_count(Dimension.NETHER) == 1


class TestLoad:
    """Tests for load()."""

    @pytest.mark.unit
    def test_load_overlays_persisted_values(self, metrics):
        backend = MemoryStateBackend({Dimension.NETHER: False})
        store = StateStore(backend, metrics=metrics, initial={Dimension.END: False})

        snapshot = store.load()

        assert snapshot == {
            Dimension.OVERWORLD: True,
            Dimension.NETHER: False,
            Dimension.END: False,
        }
        # Loading is not a transition
        assert metrics.snapshot().close_counts == {}

    @pytest.mark.unit
    def test_load_failure_keeps_current_values(self):
        class FailingBackend(MemoryStateBackend):
            def load(self):
                from dimension_gate.core.errors import PersistenceContext, PersistenceError

                raise PersistenceError(context=PersistenceContext("state.load", "unreadable"))

        store = StateStore(FailingBackend(), initial={Dimension.END: False})

        assert store.load()[Dimension.END] is False
        assert store.is_open(Dimension.NETHER) is True
