"""Reusable mark buffers for LCA walks and reachability searches.

A MarkBuffer remembers which keys it touched so `clear` costs as much as the
last query did, not as much as the structure it indexes.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import Any


class MarkBuffer:
    """Key -> mark map cleared lazily."""

    def __init__(self) -> None:
        self._marks: dict[Hashable, Any] = {}
        self._touched: list[Hashable] = []

    def mark(self, key: Hashable, value: Any = True) -> None:
        if key not in self._marks:
            self._touched.append(key)
        self._marks[key] = value

    def get(self, key: Hashable) -> Any:
        return self._marks.get(key)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._marks

    def __len__(self) -> int:
        return len(self._touched)

    def touched(self) -> list[Hashable]:
        return list(self._touched)

    def clear(self) -> None:
        for key in self._touched:
            del self._marks[key]
        self._touched.clear()


@dataclass
class ScratchPool:
    """Scratch buffers owned by one layout run."""

    cluster_marks: MarkBuffer = field(default_factory=MarkBuffer)
    tree_marks: MarkBuffer = field(default_factory=MarkBuffer)
    visited: MarkBuffer = field(default_factory=MarkBuffer)
