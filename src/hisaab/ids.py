"""Identifier issuing for invoices, line items and payments."""

from __future__ import annotations

import itertools
import secrets
import string
import threading
from typing import Protocol


class IdGenerator(Protocol):
    """Source of opaque unique identifiers."""

    def new_id(self) -> str:
        ...


class RandomIdGenerator:
    """Short lowercase base36 tokens for production use."""

    ALPHABET = string.digits + string.ascii_lowercase

    def __init__(self, length: int = 7) -> None:
        self._length = length

    def new_id(self) -> str:
        return "".join(secrets.choice(self.ALPHABET) for _ in range(self._length))


class SequentialIdGenerator:
    """Deterministic ``<prefix>_<n>`` identifiers, used by tests."""

    def __init__(self, prefix: str = "id", start: int = 1) -> None:
        self._prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def new_id(self) -> str:
        with self._lock:
            return f"{self._prefix}_{next(self._counter)}"
