from __future__ import annotations

import logging
import uuid

_LOGGER = logging.getLogger("tonetune.handles")

HANDLE_PREFIX = "blob:tonetune/"


class HandleRegistry:
    """Maps opaque handle strings to rendered file bytes until released."""

    def __init__(self) -> None:
        self._entries: dict[str, bytes] = {}

    def register(self, data: bytes) -> str:
        handle = f"{HANDLE_PREFIX}{uuid.uuid4()}"
        self._entries[handle] = data
        return handle

    def resolve(self, handle: str) -> bytes | None:
        return self._entries.get(handle)

    def revoke(self, handle: str) -> bool:
        released = self._entries.pop(handle, None) is not None
        if not released:
            _LOGGER.debug("Handle %s was already released", handle)
        return released

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries

    def __len__(self) -> int:
        return len(self._entries)
