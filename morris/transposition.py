"""
Nine Men's Morris - Transposition Table
Depth and bound aware cache of search results, cleared per move decision.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Hashable, Optional


class TTEntryType(IntEnum):
    """Transposition table entry types."""
    EXACT = 0      # Exact score
    LOWER = 1      # Score is lower bound (failed high / beta cutoff)
    UPPER = 2      # Score is upper bound (failed low / alpha cutoff)


@dataclass(slots=True)
class TTEntry:
    """Transposition table entry."""
    depth: int                 # Remaining search depth when stored
    score: float               # Evaluated score
    entry_type: TTEntryType    # Type of bound
    best_move: object          # Best move found (None at leaves)


def bound_type(score: float, alpha: float, beta: float) -> TTEntryType:
    """Classify a fail-soft result against the window it was searched with."""
    if score <= alpha:
        return TTEntryType.UPPER
    if score >= beta:
        return TTEntryType.LOWER
    return TTEntryType.EXACT


class TranspositionTable:
    """
    Dictionary backed transposition table.

    Entries are replaced only by results of equal or greater depth. When
    `max_entries` is set and the table is full, new positions are skipped
    (existing ones can still be upgraded).
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries
        self.table: Dict[Hashable, TTEntry] = {}
        self.hits = 0
        self.misses = 0
        self.stores = 0

    def lookup(self, key: Hashable, depth: int, alpha: float, beta: float) -> Optional[TTEntry]:
        """
        Return the entry only if it can be trusted for a query at `depth`
        with window (alpha, beta): exact hits always, lower bounds when they
        reach beta, upper bounds when they stay at or below alpha.
        """
        entry = self.table.get(key)
        if entry is None or entry.depth < depth:
            self.misses += 1
            return None

        usable = (
            entry.entry_type == TTEntryType.EXACT
            or (entry.entry_type == TTEntryType.LOWER and entry.score >= beta)
            or (entry.entry_type == TTEntryType.UPPER and entry.score <= alpha)
        )
        if not usable:
            self.misses += 1
            return None

        self.hits += 1
        return entry

    def store(self, key: Hashable, depth: int, score: float,
              entry_type: TTEntryType, best_move=None):
        """Store a result, never downgrading a deeper entry."""
        existing = self.table.get(key)
        if existing is not None and existing.depth > depth:
            return
        if existing is None and self.max_entries is not None and len(self.table) >= self.max_entries:
            return

        self.table[key] = TTEntry(depth=depth, score=score,
                                  entry_type=entry_type, best_move=best_move)
        self.stores += 1

    def clear(self):
        """Clear the table."""
        self.table.clear()
        self.hits = 0
        self.misses = 0
        self.stores = 0

    def __len__(self):
        return len(self.table)

    def stats(self) -> Dict:
        """Return table statistics."""
        total = self.hits + self.misses
        return {
            'entries': len(self.table),
            'capacity': self.max_entries,
            'hits': self.hits,
            'misses': self.misses,
            'stores': self.stores,
            'hit_rate': self.hits / total if total > 0 else 0,
        }
