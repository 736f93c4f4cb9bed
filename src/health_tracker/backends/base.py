"""Clases base para backends de almacenamiento clave/valor."""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Base error raised by storage backends."""


class StorageUnavailableError(StorageError):
    """The backend cannot be read or written (missing, locked, denied)."""


class StorageQuotaError(StorageError):
    """The value does not fit in the backend's quota."""


class StorageBackend(ABC):
    """Abstract string key/value storage.

    Backends raise ``StorageError`` subclasses; callers that must never fail
    (the record store) catch them and turn them into results.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or None if the key is absent.

        Raises:
            StorageUnavailableError: If the backend cannot be read.
        """

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            StorageUnavailableError: If the backend cannot be written.
            StorageQuotaError: If the value exceeds the backend quota.
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; absent keys are ignored."""
