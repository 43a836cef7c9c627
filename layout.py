# layout.py
"""
Layout model: a keyboard grid of character ids plus cached scores.

The grid assigns one character id per key with no repeats. Score vectors
hold, per statistic, the summed corpus frequency of the characters sitting
on that statistic's key sequences; they are only valid right after a
scoring pass (see scoring.py) and go stale on any grid mutation.
"""

import os
import numpy as np
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ngram_index import Coordinate, KeyboardGeometry, N_SKIPS
from stats import StatisticsModel
from corpus import Alphabet

MISMATCH = -1

Swap = Tuple[Coordinate, Coordinate]

#-----------------------------------------------------------------------------
# Grid validation
#-----------------------------------------------------------------------------
def check_grid(grid: np.ndarray, geometry: KeyboardGeometry, lang_length: int) -> None:
    """
    Ensure a grid is a duplicate-free assignment of valid character ids.

    Raises:
        ValueError: on shape mismatch, out-of-range ids, or repeated ids
    """
    if grid.shape != (geometry.rows, geometry.cols):
        raise ValueError(
            f"Grid shape {grid.shape} does not match keyboard {geometry.rows}x{geometry.cols}"
        )
    if grid.size and (grid.min() < 0 or grid.max() >= lang_length):
        raise ValueError(f"Grid contains character ids outside 0..{lang_length - 1}")
    values, counts = np.unique(grid, return_counts=True)
    if np.any(counts > 1):
        raise ValueError(f"Grid repeats character ids: {values[counts > 1].tolist()}")

#-----------------------------------------------------------------------------
# Layout
#-----------------------------------------------------------------------------
class Layout:
    """
    Mutable key assignment with per-class score vectors.

    Attributes:
        name: layout name
        grid: (rows, cols) int64 array of character ids
        score: aggregate weighted score
        mono_score, bi_score, tri_score, quad_score: one entry per statistic
        skip_score: (9, n_skip_stats), row h is skip distance h + 1
        meta_score: one entry per meta statistic, computed from the others
    """

    def __init__(self, name: str, grid, stats: StatisticsModel, lang_length: int,
                 check: bool = True):
        self.name = name
        self.stats = stats
        self.lang_length = lang_length
        self.grid = np.array(grid, dtype=np.int64)
        if check:
            check_grid(self.grid, stats.geometry, lang_length)

        self.score = 0.0
        self.mono_score = np.zeros(stats.registry('mono').count)
        self.bi_score = np.zeros(stats.registry('bi').count)
        self.tri_score = np.zeros(stats.registry('tri').count)
        self.quad_score = np.zeros(stats.registry('quad').count)
        self.skip_score = np.zeros((N_SKIPS, stats.registry('skip').count))
        self.meta_score = np.zeros(stats.meta_registry.count)

    def __repr__(self) -> str:
        return f"Layout(name={self.name!r}, score={self.score:.4f})"

    @property
    def geometry(self) -> KeyboardGeometry:
        return self.stats.geometry

    @property
    def flat_grid(self) -> np.ndarray:
        """Grid as a 1-D view indexed by key number."""
        return self.grid.reshape(-1)

    def class_scores(self, ngram_class: str) -> np.ndarray:
        return getattr(self, f"{ngram_class}_score")

    def score_vectors(self) -> Dict[str, np.ndarray]:
        return {
            'mono': self.mono_score,
            'bi': self.bi_score,
            'tri': self.tri_score,
            'quad': self.quad_score,
            'skip': self.skip_score,
            'meta': self.meta_score,
        }

    # Snapshots ---------------------------------------------------------------
    def snapshot_scores(self) -> Tuple[float, Dict[str, np.ndarray]]:
        """Copy of the aggregate score and score vectors, for rollback."""
        return self.score, {cls: vec.copy() for cls, vec in self.score_vectors().items()}

    def restore_scores(self, snapshot: Tuple[float, Dict[str, np.ndarray]]) -> None:
        score, vectors = snapshot
        self.score = score
        for cls, vec in vectors.items():
            self.class_scores(cls)[...] = vec

    # Grid mutation ---------------------------------------------------------
    def _check_coordinate(self, coordinate: Coordinate) -> None:
        if not self.geometry.contains(coordinate):
            raise ValueError(
                f"Key {coordinate} is outside the {self.geometry.rows}x{self.geometry.cols} grid"
            )

    def swap(self, coord0: Coordinate, coord1: Coordinate) -> None:
        """Exchange the characters on two distinct keys (self-inverse)."""
        self._check_coordinate(coord0)
        self._check_coordinate(coord1)
        if tuple(coord0) == tuple(coord1):
            raise ValueError(f"Cannot swap key {coord0} with itself")
        (r0, c0), (r1, c1) = coord0, coord1
        self.grid[r0, c0], self.grid[r1, c1] = self.grid[r1, c1], self.grid[r0, c0]

    def apply_swaps(self, swaps: Iterable[Swap]) -> None:
        for coord0, coord1 in swaps:
            self.swap(coord0, coord1)

    def undo_swaps(self, swaps: Sequence[Swap]) -> None:
        """Restore the grid from before apply_swaps(swaps)."""
        for coord0, coord1 in reversed(swaps):
            self.swap(coord0, coord1)

    def shuffle(self, rng: np.random.Generator) -> None:
        """Uniform random permutation of the grid (Fisher-Yates)."""
        flat = self.flat_grid
        for i in range(flat.size - 1, 0, -1):
            j = int(rng.integers(0, i + 1))
            flat[i], flat[j] = flat[j], flat[i]

    # Copies ------------------------------------------------------------------
    def skeleton_copy(self, name: Optional[str] = None) -> "Layout":
        """New layout with this name and grid, and zeroed scores."""
        return Layout(self.name if name is None else name, self.grid, self.stats,
                      self.lang_length, check=False)

    def copy(self, name: Optional[str] = None) -> "Layout":
        """Deep copy: grid, scores and score vectors share nothing with self."""
        duplicate = self.skeleton_copy(name)
        copy_layout(duplicate, self)
        if name is not None:
            duplicate.name = name
        return duplicate

    def chars(self, alphabet: Alphabet) -> List[List[str]]:
        return [[alphabet.char(c) if c != MISMATCH else '*' for c in row] for row in self.grid]

def copy_layout(dest: Layout, src: Layout) -> None:
    """Copy name, grid, aggregate score and every score vector from src into dest."""
    dest.name = src.name
    dest.stats = src.stats
    dest.lang_length = src.lang_length
    dest.grid = src.grid.copy()
    dest.score = src.score
    dest.mono_score = src.mono_score.copy()
    dest.bi_score = src.bi_score.copy()
    dest.tri_score = src.tri_score.copy()
    dest.quad_score = src.quad_score.copy()
    dest.skip_score = src.skip_score.copy()
    dest.meta_score = src.meta_score.copy()

def diff_layouts(a: Layout, b: Layout) -> Layout:
    """
    Difference of two scored layouts.

    Grid cells that hold the same character keep it; others hold MISMATCH.
    The aggregate score and every score-vector entry are plain differences
    a - b.
    """
    if a.stats is not b.stats:
        raise ValueError("Cannot diff layouts scored against different statistics")

    grid = np.where(a.grid == b.grid, a.grid, MISMATCH)
    d = Layout(f"{a.name} - {b.name}", grid, a.stats, a.lang_length, check=False)
    d.score = a.score - b.score
    d.mono_score = a.mono_score - b.mono_score
    d.bi_score = a.bi_score - b.bi_score
    d.tri_score = a.tri_score - b.tri_score
    d.quad_score = a.quad_score - b.quad_score
    d.skip_score = a.skip_score - b.skip_score
    d.meta_score = a.meta_score - b.meta_score
    return d

#-----------------------------------------------------------------------------
# Layout files
#-----------------------------------------------------------------------------
def parse_layout(name: str, text: str, alphabet: Alphabet, stats: StatisticsModel) -> Layout:
    """Build a layout from text: one keyboard row per line, keys separated by whitespace."""
    rows = [line.split() for line in text.splitlines() if line.strip()]
    geometry = stats.geometry
    if len(rows) != geometry.rows or any(len(row) != geometry.cols for row in rows):
        raise ValueError(
            f"Layout '{name}' must have {geometry.rows} rows of {geometry.cols} keys"
        )
    for row in rows:
        for key in row:
            if len(key) != 1:
                raise ValueError(f"Layout '{name}' has an invalid key entry: '{key}'")
    grid = [[alphabet.index(key) for key in row] for row in rows]
    return Layout(name, grid, stats, alphabet.lang_length)

def load_layout(path: str, alphabet: Alphabet, stats: StatisticsModel) -> Layout:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Layout file not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()
    name = os.path.splitext(os.path.basename(path))[0]
    return parse_layout(name, text, alphabet, stats)

def format_layout(layout: Layout, alphabet: Alphabet) -> str:
    return "\n".join(" ".join(row) for row in layout.chars(alphabet)) + "\n"

def save_layout(layout: Layout, path: str, alphabet: Alphabet) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        f.write(format_layout(layout, alphabet))

def list_layout_files(folder: str) -> List[str]:
    if not os.path.isdir(folder):
        raise FileNotFoundError(f"Layout folder not found: {folder}")
    return sorted(
        os.path.join(folder, name) for name in os.listdir(folder)
        if name.endswith('.txt')
    )
