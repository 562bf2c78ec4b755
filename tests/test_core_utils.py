import pytest

from superorder.core.clock import ManualClock
from superorder.core.events import EventLog, ExtensionEvent
from superorder.core.fingerprint import fingerprint_of, pair_id_of
from superorder.core.guard import ExecutionGuard
from superorder.core.store import KeyedStore
from superorder.exceptions import ConfigurationError, ReentrantCallError

# --- KeyedStore ---

def test_transaction_restores_entry_on_error():
    store = KeyedStore("test")
    store.put("a", {"value": 1})

    with pytest.raises(RuntimeError):
        with store.transaction("a"):
            store.require("a")["value"] = 2
            raise RuntimeError("boom")

    assert store.require("a") == {"value": 1}


def test_transaction_removes_entry_created_inside_failed_block():
    store = KeyedStore("test")
    with pytest.raises(ValueError):
        with store.transaction("new"):
            store.put("new", [1])
            raise ValueError()
    assert "new" not in store


def test_transaction_keeps_changes_on_success():
    store = KeyedStore("test")
    store.put("a", [1])
    with store.transaction("a"):
        store.require("a").append(2)
    assert store.require("a") == [1, 2]


def test_require_uses_missing_error():
    store = KeyedStore("test", missing_error=lambda key: ConfigurationError(f"missing {key}"))
    with pytest.raises(ConfigurationError, match="missing x"):
        store.require("x")


def test_require_without_missing_error_raises_key_error():
    with pytest.raises(KeyError):
        KeyedStore("test").require("x")

# --- ExecutionGuard ---

def test_guard_rejects_nested_hold_for_same_key():
    guard = ExecutionGuard()
    with guard.hold("fp"):
        assert guard.is_held("fp")
        with pytest.raises(ReentrantCallError):
            with guard.hold("fp"):
                pass
        # Other keys are independent
        with guard.hold("other"):
            pass
    assert not guard.is_held("fp")


def test_guard_released_after_exception():
    guard = ExecutionGuard()
    with pytest.raises(RuntimeError):
        with guard.hold("fp"):
            raise RuntimeError()
    assert not guard.is_held("fp")

# --- Clock / events / fingerprints ---

def test_manual_clock_moves_forward_only():
    clock = ManualClock(start=100)
    assert clock.advance(5) == 105
    clock.set(200)
    assert clock.now() == 200
    with pytest.raises(ValueError):
        clock.advance(-1)
    with pytest.raises(ValueError):
        clock.set(199)


def test_event_log_filters():
    log = EventLog()
    log.emit(ExtensionEvent(name="a", key="k1", timestamp=1))
    log.emit(ExtensionEvent(name="b", key="k1", timestamp=2))
    log.emit(ExtensionEvent(name="a", key="k2", timestamp=3))

    assert len(log) == 3
    assert [e.key for e in log.named("a")] == ["k1", "k2"]
    assert len(log.named("a", key="k2")) == 1
    assert [e.name for e in log.for_key("k1")] == ["a", "b"]


def test_fingerprint_is_order_independent():
    a = fingerprint_of({"maker": "0x1", "amount": 5})
    b = fingerprint_of({"amount": 5, "maker": "0x1"})
    assert a == b
    assert a.startswith("0x") and len(a) == 66
    assert fingerprint_of({"maker": "0x1", "amount": 6}) != a


def test_pair_id_depends_on_order():
    assert pair_id_of("0xa", "0xb") != pair_id_of("0xb", "0xa")
