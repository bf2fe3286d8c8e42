"""Tests for RuleLockRegistry."""

import threading

from services.rule_locks import RuleLockRegistry


class TestRuleLockRegistry:
    def test_claim_acquires_and_releases(self):
        registry = RuleLockRegistry()

        with registry.claim("rule-1") as claimed:
            assert claimed is True
            assert registry.is_claimed("rule-1") is True

        assert registry.is_claimed("rule-1") is False

    def test_non_blocking_claim_on_busy_rule(self):
        registry = RuleLockRegistry()

        with registry.claim("rule-1"):
            with registry.claim("rule-1", blocking=False) as claimed:
                assert claimed is False
            # A failed claim must not release the holder's lock
            assert registry.is_claimed("rule-1") is True

    def test_rules_are_independent(self):
        registry = RuleLockRegistry()

        with registry.claim("rule-1"):
            with registry.claim("rule-2", blocking=False) as claimed:
                assert claimed is True

    def test_released_on_exception(self):
        registry = RuleLockRegistry()

        try:
            with registry.claim("rule-1"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert registry.is_claimed("rule-1") is False

    def test_blocks_other_threads(self):
        registry = RuleLockRegistry()
        seen = []

        def worker():
            with registry.claim("rule-1", blocking=False) as claimed:
                seen.append(claimed)

        with registry.claim("rule-1"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert seen == [False]

    def test_released_locks_are_pruned(self):
        registry = RuleLockRegistry()

        with registry.claim("rule-1"):
            assert "rule-1" in registry._locks
        registry.is_claimed("rule-2")

        assert len(registry._locks) == 0

    def test_waiters_share_one_lock(self):
        registry = RuleLockRegistry()
        entered = threading.Event()
        order = []

        def worker():
            entered.set()
            with registry.claim("rule-1"):
                order.append("worker")

        with registry.claim("rule-1"):
            thread = threading.Thread(target=worker)
            thread.start()
            entered.wait()
            order.append("holder")
        thread.join()

        assert order == ["holder", "worker"]
