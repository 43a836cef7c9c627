# normalize_input.py
"""
Corpus normalization

Turns raw n-gram counts into percentage-of-total frequency tables, one per
n-gram class. Each skip distance is normalized on its own, since the nine
skip buckets are separate populations. A class (or skip bucket) with no
counts stays all-zero.

Also provides TeeLogger, used by the command line to keep a copy of the
console output in the results folder.
"""

import sys
import numpy as np
from dataclasses import dataclass

from corpus import RawCounts

class TeeLogger:
    """
    Class to capture stdout and write to both console and a file.
    """
    def __init__(self, filename):
        self.terminal = sys.stdout
        self.log = open(filename, 'w')

    def write(self, message):
        self.terminal.write(message)
        self.log.write(message)

    def flush(self):
        self.terminal.flush()
        self.log.flush()

    def close(self):
        self.log.close()

@dataclass(frozen=True)
class NormalizedTables:
    """Corpus frequencies as percentages, flat-indexed by character ids."""
    lang_length: int
    mono: np.ndarray
    bi: np.ndarray
    tri: np.ndarray
    quad: np.ndarray
    skip: np.ndarray   # shape (9, LANG_LENGTH**2)

    def table(self, ngram_class: str) -> np.ndarray:
        return getattr(self, ngram_class)

def to_percentages(counts: np.ndarray) -> np.ndarray:
    """Scale counts so they sum to 100; all-zero input gives all-zero output."""
    percentages = np.zeros(counts.shape, dtype=np.float64)
    total = counts.sum(dtype=np.float64)
    if total > 0:
        percentages[...] = counts * (100.0 / total)
    return percentages

def normalize_counts(raw: RawCounts) -> NormalizedTables:
    """
    Normalize raw counts per class.

    Args:
        raw: Raw integer counts

    Returns:
        Read-only NormalizedTables
    """
    skip = np.zeros(raw.skip.shape, dtype=np.float64)
    for h in range(raw.skip.shape[0]):
        skip[h] = to_percentages(raw.skip[h])

    tables = NormalizedTables(
        lang_length=raw.lang_length,
        mono=to_percentages(raw.mono),
        bi=to_percentages(raw.bi),
        tri=to_percentages(raw.tri),
        quad=to_percentages(raw.quad),
        skip=skip,
    )
    for array in (tables.mono, tables.bi, tables.tri, tables.quad, tables.skip):
        array.setflags(write=False)
    return tables
