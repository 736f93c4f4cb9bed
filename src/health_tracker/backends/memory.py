"""Backend en memoria (tests y sesiones efimeras)."""

from __future__ import annotations

from health_tracker.backends.base import (
    StorageBackend,
    StorageQuotaError,
    StorageUnavailableError,
)


class MemoryBackend(StorageBackend):
    """Dict-backed storage with an optional byte quota."""

    def __init__(
        self,
        initial: dict[str, str] | None = None,
        *,
        quota_bytes: int | None = None,
        available: bool = True,
    ) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.quota_bytes = quota_bytes
        self.available = available

    def _check_available(self) -> None:
        if not self.available:
            raise StorageUnavailableError("memory backend disabled")

    def get(self, key: str) -> str | None:
        self._check_available()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_available()
        if self.quota_bytes is not None:
            others = sum(
                len(v.encode("utf-8")) for k, v in self._data.items() if k != key
            )
            if others + len(value.encode("utf-8")) > self.quota_bytes:
                raise StorageQuotaError(
                    f"quota of {self.quota_bytes} bytes exceeded"
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._check_available()
        self._data.pop(key, None)
