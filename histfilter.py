"""
histfilter.py - Case-insensitive substring filtering over the master list.

`filter_commands` is the reference definition: one linear scan, master-list order
preserved. `FilterEngine` returns exactly the same lists but remembers the results
of the queries typed so far, so that typing one more character only rescans the
previous matches and backspacing returns a cached result.
"""

from __future__ import annotations

from collections.abc import Sequence

from histmodel import RankedCommand


def filter_commands(master: Sequence[RankedCommand], query: str) -> list[RankedCommand]:
    if not query:
        return list(master)
    needle = query.lower()
    return [command for command in master if needle in command.text.lower()]


class FilterEngine:
    """Incremental filter over an immutable master list."""

    def __init__(self, master: Sequence[RankedCommand]):
        self.master = master
        self._lowered = [command.text.lower() for command in master]
        # (lowered query, matching indices); each query extends the one below it.
        self._stack: list[tuple[str, list[int]]] = [("", list(range(len(master))))]

    def filter(self, query: str) -> list[RankedCommand]:
        needle = query.lower()
        while not needle.startswith(self._stack[-1][0]):
            self._stack.pop()
        base_needle, base_indices = self._stack[-1]
        if needle == base_needle:
            indices = base_indices
        else:
            lowered = self._lowered
            indices = [i for i in base_indices if needle in lowered[i]]
            self._stack.append((needle, indices))
        return [self.master[i] for i in indices]
