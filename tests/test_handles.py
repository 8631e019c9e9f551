from __future__ import annotations

from tonetune.handles import HANDLE_PREFIX, HandleRegistry


def test_register_resolve_revoke() -> None:
    registry = HandleRegistry()
    handle = registry.register(b"wav")
    assert handle.startswith(HANDLE_PREFIX)
    assert handle in registry
    assert registry.resolve(handle) == b"wav"
    assert registry.revoke(handle)
    assert registry.resolve(handle) is None
    assert not registry.revoke(handle)
    assert len(registry) == 0


def test_handles_are_unique() -> None:
    registry = HandleRegistry()
    handles = {registry.register(b"") for _ in range(20)}
    assert len(handles) == 20
    registry.clear()
    assert len(registry) == 0
