# corpus.py
"""
Alphabet and raw n-gram count tables.

Raw counts are read from CSV tables in a corpus folder:

    mono.csv, bi.csv, tri.csv, quad.csv   columns: ngram,count
    skip.csv                              columns: skip,ngram,count

A missing table means zero counts for that class. Rows whose n-gram has the
wrong length or uses characters outside the alphabet are dropped.
"""

import os
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ngram_index import N_SKIPS, flatten_chars
from stats import ARITY

COUNT_FILES = {
    'mono': 'mono.csv',
    'bi': 'bi.csv',
    'tri': 'tri.csv',
    'quad': 'quad.csv',
    'skip': 'skip.csv',
}

#-----------------------------------------------------------------------------
# Alphabet
#-----------------------------------------------------------------------------
class Alphabet:
    """Maps supported characters to identifiers 0..LANG_LENGTH-1."""

    def __init__(self, characters: str):
        if not characters:
            raise ValueError("Alphabet cannot be empty")
        if len(set(characters)) != len(characters):
            duplicates = sorted(c for c in set(characters) if characters.count(c) > 1)
            raise ValueError(f"Duplicate characters in alphabet: {duplicates}")
        self.characters = characters
        self._ids = {char: i for i, char in enumerate(characters)}

    def __len__(self) -> int:
        return len(self.characters)

    def __contains__(self, char: str) -> bool:
        return char in self._ids

    @property
    def lang_length(self) -> int:
        return len(self.characters)

    def index(self, char: str) -> int:
        try:
            return self._ids[char]
        except KeyError:
            raise ValueError(f"Character '{char}' is not in the alphabet")

    def char(self, char_id: int) -> str:
        return self.characters[char_id]

    def encode(self, text: str) -> Optional[List[int]]:
        """Character ids for `text`, or None if any character is unsupported."""
        ids = [self._ids.get(char) for char in text]
        if any(i is None for i in ids):
            return None
        return ids

#-----------------------------------------------------------------------------
# Raw counts
#-----------------------------------------------------------------------------
@dataclass
class RawCounts:
    """Integer n-gram counts, flat-indexed by character ids."""
    lang_length: int
    mono: np.ndarray
    bi: np.ndarray
    tri: np.ndarray
    quad: np.ndarray
    skip: np.ndarray   # shape (9, LANG_LENGTH**2), row h is skip distance h + 1

    @classmethod
    def empty(cls, lang_length: int) -> "RawCounts":
        return cls(
            lang_length=lang_length,
            mono=np.zeros(lang_length, dtype=np.int64),
            bi=np.zeros(lang_length ** 2, dtype=np.int64),
            tri=np.zeros(lang_length ** 3, dtype=np.int64),
            quad=np.zeros(lang_length ** 4, dtype=np.int64),
            skip=np.zeros((N_SKIPS, lang_length ** 2), dtype=np.int64),
        )

    def add(self, ngram_ids: Sequence[int], count: int, skip: Optional[int] = None) -> None:
        """Add `count` occurrences of one n-gram given as character ids."""
        index = flatten_chars(ngram_ids, self.lang_length)
        if skip is not None:
            self.skip[skip - 1, index] += count
            return
        table = {1: self.mono, 2: self.bi, 3: self.tri, 4: self.quad}[len(ngram_ids)]
        table[index] += count

def _read_count_table(path: str, with_skip: bool = False) -> pd.DataFrame:
    """Read a count CSV keeping n-gram strings verbatim (no NA coercion)."""
    columns = ['skip', 'ngram', 'count'] if with_skip else ['ngram', 'count']
    df = pd.read_csv(path, dtype=str, keep_default_na=False, na_filter=False)
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(f"Count table {path} is missing columns: {missing}")
    try:
        for col in columns:
            if col != 'ngram':
                df[col] = df[col].astype(np.int64)
    except ValueError as e:
        raise ValueError(f"Count table {path} has non-integer values: {e}")
    return df

def load_raw_counts(corpus_folder: str, alphabet: Alphabet) -> Tuple[RawCounts, Dict[str, int]]:
    """
    Load every count table in a corpus folder.

    Args:
        corpus_folder: Folder holding mono/bi/tri/quad/skip CSV tables
        alphabet: Supported characters

    Returns:
        (raw_counts, dropped_rows_per_class)
    """
    if not os.path.isdir(corpus_folder):
        raise FileNotFoundError(f"Corpus folder not found: {corpus_folder}")

    raw = RawCounts.empty(alphabet.lang_length)
    dropped = {}

    for ngram_class, filename in COUNT_FILES.items():
        path = os.path.join(corpus_folder, filename)
        dropped[ngram_class] = 0
        if not os.path.exists(path):
            continue

        is_skip = ngram_class == 'skip'
        df = _read_count_table(path, with_skip=is_skip)
        arity = ARITY[ngram_class]

        skips = df['skip'] if is_skip else [None] * len(df)
        for ngram, count, skip in zip(df['ngram'], df['count'], skips):
            ids = alphabet.encode(ngram)
            if (ids is None or len(ids) != arity or count < 0
                    or (is_skip and not 1 <= skip <= N_SKIPS)):
                dropped[ngram_class] += 1
                continue
            raw.add(ids, int(count), skip=None if skip is None else int(skip))

    return raw, dropped
