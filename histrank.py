"""
histrank.py - Collapses duplicate entries and orders them by relevance.

Score of a unique command:

    score = OCCURRENCES_WEIGHT * log(1 + occurrences) + RECENCY_WEIGHT * recency

`recency` is where the command's last use falls within the observed range, in
[0, 1]. It uses the last timestamp when the command has one (normalized over the
commands that do) and the last sequence number otherwise (normalized over all
commands). The weights are part of the tool's contract: identical input always
yields an identical ordering.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from histmodel import Entry, RankedCommand

logger = logging.getLogger(__name__)

OCCURRENCES_WEIGHT = 1.0
RECENCY_WEIGHT = 1.0


@dataclass
class _Group:
    occurrences: int
    last_sequence: int
    last_timestamp: int | None


def group_entries(entries: Iterable[Entry]) -> dict[str, _Group]:
    """→ Groups entries by exact command text, keeping counts and latest positions"""
    groups: dict[str, _Group] = {}
    for entry in entries:
        group = groups.get(entry.text)
        if group is None:
            groups[entry.text] = _Group(1, entry.sequence, entry.timestamp)
            continue
        group.occurrences += 1
        group.last_sequence = max(group.last_sequence, entry.sequence)
        if entry.timestamp is not None:
            if group.last_timestamp is None or entry.timestamp > group.last_timestamp:
                group.last_timestamp = entry.timestamp
    return groups


def _normalize(value: int, low: int, high: int) -> float:
    if high == low:
        return 1.0
    return (value - low) / (high - low)


def score_command(occurrences: int, recency: float) -> float:
    return OCCURRENCES_WEIGHT * math.log1p(occurrences) + RECENCY_WEIGHT * recency


def rank_commands(entries: Iterable[Entry]) -> list[RankedCommand]:
    """→ Builds the master list: one RankedCommand per unique text, best first"""
    groups = group_entries(entries)
    if not groups:
        return []

    sequences = [g.last_sequence for g in groups.values()]
    timestamps = [g.last_timestamp for g in groups.values() if g.last_timestamp is not None]
    seq_low, seq_high = min(sequences), max(sequences)
    ts_low, ts_high = (min(timestamps), max(timestamps)) if timestamps else (0, 0)

    ranked = []
    for text, group in groups.items():
        if group.last_timestamp is not None:
            recency = _normalize(group.last_timestamp, ts_low, ts_high)
        else:
            recency = _normalize(group.last_sequence, seq_low, seq_high)
        ranked.append(
            RankedCommand(
                text=text,
                occurrences=group.occurrences,
                last_sequence=group.last_sequence,
                last_timestamp=group.last_timestamp,
                score=score_command(group.occurrences, recency),
            )
        )

    ranked.sort(key=lambda command: command.sort_key)
    logger.debug("Ranked %d unique commands", len(ranked))
    return ranked
