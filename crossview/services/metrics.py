"""Metrics service utilities."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple


class Metrics:
    """Encapsulate the field -> title bindings charts are built from."""

    def __init__(self, mapping: Dict[str, str]):
        self.mapping = dict(mapping)

    def label(self, key: Optional[str]) -> str:
        if not key:
            return ""
        return self.mapping.get(key, key)

    def available(self, columns: Iterable[str]) -> List[Tuple[str, str]]:
        present = set(columns)
        return [(k, v) for k, v in self.mapping.items() if k in present]


__all__ = ["Metrics"]
