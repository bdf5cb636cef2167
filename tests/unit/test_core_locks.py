"""Unit tests for the per-key lock registry."""

import threading
import time

from cryptostore.core.locks import KeyLockRegistry


def test_lock_is_reclaimed_after_use():
    registry = KeyLockRegistry()
    with registry.lock("a"):
        assert len(registry) == 1
    assert len(registry) == 0


def test_lock_is_reclaimed_after_exception():
    registry = KeyLockRegistry()
    try:
        with registry.lock("a"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert len(registry) == 0


def test_same_key_is_mutually_exclusive():
    registry = KeyLockRegistry()
    inside = []
    overlaps = []

    def worker():
        with registry.lock("k"):
            inside.append(1)
            if len(inside) > 1:
                overlaps.append(1)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []
    assert len(registry) == 0


def test_different_keys_do_not_block():
    registry = KeyLockRegistry()
    entered = threading.Event()

    def other():
        with registry.lock("b"):
            entered.set()

    with registry.lock("a"):
        t = threading.Thread(target=other)
        t.start()
        assert entered.wait(timeout=2)
        t.join()
