# ranking.py
"""
Ranking of the best layouts found so far, highest score first.

Entries hold the name and score copied at insertion time, plus an optional
independent snapshot of the layout. Entries with equal scores keep the
order in which they were inserted.
"""

import threading
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterator, List, Optional

from layout import Layout

@dataclass
class RankedLayout:
    name: str
    score: float
    layout: Optional[Layout] = None

class RankingList:
    """
    Score-descending collection of layouts.

    Insertion takes a lock, so results may be recorded from any thread.
    """

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size
        self._entries: List[RankedLayout] = []
        self._keys: List[float] = []   # negated scores, ascending
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RankedLayout]:
        return iter(list(self._entries))

    def __getitem__(self, index: int) -> RankedLayout:
        return self._entries[index]

    @property
    def best(self) -> Optional[RankedLayout]:
        return self._entries[0] if self._entries else None

    def scores(self) -> List[float]:
        return [entry.score for entry in self._entries]

    def insert_entry(self, name: str, score: float, layout: Optional[Layout] = None) -> int:
        """
        Insert after every entry whose score is >= `score`.

        Returns:
            The 0-based rank of the new entry, or -1 if it fell off a full list
        """
        with self._lock:
            position = bisect_right(self._keys, -score)
            self._keys.insert(position, -score)
            self._entries.insert(position, RankedLayout(name, score, layout))
            if self.max_size is not None and len(self._entries) > self.max_size:
                self._keys.pop()
                self._entries.pop()
                if position >= self.max_size:
                    return -1
            return position

    def insert(self, layout: Layout, keep_layout: bool = True) -> int:
        """Record a layout by value; a deep copy is stored when keep_layout is set."""
        snapshot = layout.copy() if keep_layout else None
        return self.insert_entry(layout.name, layout.score, snapshot)

    def free_all(self) -> None:
        """Drop every entry. Safe to call more than once."""
        with self._lock:
            self._entries.clear()
            self._keys.clear()
