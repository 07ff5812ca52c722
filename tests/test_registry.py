"""Tests for the pending request registry."""

from __future__ import annotations

import pytest

from lspwire.registry import RequestRegistry


def _noop(error, result) -> None:
    pass


class TestRequestRegistry:
    def test_ids_start_at_one_and_increase(self) -> None:
        registry = RequestRegistry()
        assert [registry.next_id() for _ in range(4)] == [1, 2, 3, 4]

    def test_ids_are_per_instance(self) -> None:
        first, second = RequestRegistry(), RequestRegistry()
        first.next_id()
        first.next_id()
        assert second.next_id() == 1

    def test_register_and_pop(self) -> None:
        registry = RequestRegistry()
        registry.register(1, _noop)

        assert 1 in registry
        assert registry.pop(1) is _noop
        assert 1 not in registry

    def test_pop_removes_at_most_once(self) -> None:
        registry = RequestRegistry()
        registry.register(1, _noop)

        assert registry.pop(1) is _noop
        assert registry.pop(1) is None

    def test_duplicate_pending_id_rejected(self) -> None:
        registry = RequestRegistry()
        registry.register(1, _noop)
        with pytest.raises(ValueError, match="already pending"):
            registry.register(1, _noop)

    def test_discard(self) -> None:
        registry = RequestRegistry()
        registry.register(3, _noop)

        assert registry.discard(3) is True
        assert registry.discard(3) is False
        assert len(registry) == 0

    def test_pending_ids(self) -> None:
        registry = RequestRegistry()
        registry.register(1, _noop)
        registry.register(2, _noop)
        registry.pop(1)
        assert registry.pending_ids() == [2]
