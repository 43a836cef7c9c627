# ngram_index.py
"""
Index arithmetic for n-gram tables.

Key sequences (1 to 4 physical keys) and character sequences are stored in
flat arrays. Both use the same positional mixed-radix encoding: each extra
element multiplies the running index by the radix (number of keys, or
alphabet size) before adding the next element, most-significant first.

Skip-gram indices carry an extra leading digit for the skip distance (1..9)
in front of the two key (or character) digits.

No bounds checking is done here; callers pass valid coordinates.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Sequence, Tuple

ROW = 3
COL = 12

SKIP_DISTANCES = tuple(range(1, 10))
N_SKIPS = len(SKIP_DISTANCES)

Coordinate = Tuple[int, int]

#-----------------------------------------------------------------------------
# Generic mixed-radix helpers
#-----------------------------------------------------------------------------
def flatten_digits(digits: Sequence[int], radix: int) -> int:
    """Encode digits (most-significant first) into one integer."""
    index = 0
    for digit in digits:
        index = index * radix + int(digit)
    return index

def unflatten_digits(index: int, arity: int, radix: int) -> Tuple[int, ...]:
    """Decode an integer into `arity` digits (most-significant first)."""
    digits = [0] * arity
    for k in range(arity - 1, -1, -1):
        digits[k] = index % radix
        index //= radix
    return tuple(digits)

def flatten_chars(char_ids: Sequence[int], lang_length: int) -> int:
    """Flat index of a character sequence in a frequency table."""
    return flatten_digits(char_ids, lang_length)

def unflatten_chars(index: int, arity: int, lang_length: int) -> Tuple[int, ...]:
    return unflatten_digits(index, arity, lang_length)

def flatten_skip_chars(skip: int, char0: int, char1: int, lang_length: int) -> int:
    """Flat index of a skip-gram character pair; skip distance is 1..9."""
    return (skip - 1) * lang_length * lang_length + char0 * lang_length + char1

def unflatten_skip_chars(index: int, lang_length: int) -> Tuple[int, int, int]:
    pair_dim = lang_length * lang_length
    skip = index // pair_dim + 1
    char0, char1 = unflatten_digits(index % pair_dim, 2, lang_length)
    return skip, char0, char1

#-----------------------------------------------------------------------------
# Keyboard geometry
#-----------------------------------------------------------------------------
@dataclass(frozen=True)
class KeyboardGeometry:
    """Physical key grid: `rows` x `cols` keys, addressed by (row, col)."""
    rows: int = ROW
    cols: int = COL

    @property
    def key_count(self) -> int:
        return self.rows * self.cols

    def dim(self, arity: int) -> int:
        """Number of key sequences of the given length."""
        return self.key_count ** arity

    @property
    def skip_dim(self) -> int:
        return N_SKIPS * self.dim(2)

    def key_index(self, row: int, col: int) -> int:
        return row * self.cols + col

    def key_coordinate(self, index: int) -> Coordinate:
        return index // self.cols, index % self.cols

    def coordinates(self) -> List[Coordinate]:
        return [(row, col) for row in range(self.rows) for col in range(self.cols)]

    def contains(self, coordinate: Coordinate) -> bool:
        row, col = coordinate
        return 0 <= row < self.rows and 0 <= col < self.cols

    # Key sequence encoding ------------------------------------------------
    def flatten(self, *coordinates: Coordinate) -> int:
        """flatten((r0, c0), (r1, c1), ...) -> flat key-sequence index."""
        keys = [self.key_index(row, col) for row, col in coordinates]
        return flatten_digits(keys, self.key_count)

    def unflatten(self, index: int, arity: int) -> Tuple[Coordinate, ...]:
        keys = unflatten_digits(index, arity, self.key_count)
        return tuple(self.key_coordinate(key) for key in keys)

    def flatten_skip(self, skip: int, coord0: Coordinate, coord1: Coordinate) -> int:
        return (skip - 1) * self.dim(2) + self.flatten(coord0, coord1)

    def unflatten_skip(self, index: int) -> Tuple[int, Coordinate, Coordinate]:
        skip = index // self.dim(2) + 1
        coord0, coord1 = self.unflatten(index % self.dim(2), 2)
        return skip, coord0, coord1

    # Bulk decoding ---------------------------------------------------------
    def key_sequences(self, arity: int) -> np.ndarray:
        """
        Decode every flat index of the given arity at once.

        Returns:
            Array of shape (dim(arity), arity) holding key indices,
            row i being the key sequence encoded by flat index i.
        """
        indices = np.arange(self.dim(arity), dtype=np.int64)
        keys = np.empty((indices.size, arity), dtype=np.int64)
        for k in range(arity - 1, -1, -1):
            keys[:, k] = indices % self.key_count
            indices //= self.key_count
        return keys
