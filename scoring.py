# scoring.py
"""
Scoring system for layout optimization.

A scoring pass fills every score vector of a layout: entry i of a class is
the sum of normalized corpus frequency over all key sequences of statistic
i, looked up through the characters the grid places on those keys. The
aggregate score is the weighted sum of all entries across all classes and
skip distances:

    score = sum_i score_vector[i] * weight[i]

Meta statistics are evaluated last, from the finished class vectors, and
add their own weighted entries to the aggregate.

The inner loop is a JIT-compiled kernel that releases the GIL, so worker
threads can score their own layouts in parallel.
"""

import numpy as np
from numba import jit
from typing import Dict, Tuple

from config import Config
from corpus import Alphabet, RawCounts, load_raw_counts
from layout import Layout
from ngram_index import KeyboardGeometry, N_SKIPS
from normalize_input import NormalizedTables, normalize_counts
from stats import ARITY, META_CLASS, NGRAM_CLASSES, WEIGHT_CLASSES, StatisticsModel
from stat_definitions import (builtin_definitions, load_custom_definitions,
                              builtin_meta_definitions, load_weights, merge_definitions)

#-----------------------------------------------------------------------------
# JIT-compiled core calculation
#-----------------------------------------------------------------------------
@jit(nopython=True, nogil=True)
def _sum_stat_frequencies_jit(flat_grid: np.ndarray, ngrams: np.ndarray, lengths: np.ndarray,
                              freq: np.ndarray, arity: int, key_count: int,
                              lang_length: int, out: np.ndarray) -> None:
    """
    For each statistic row, sum freq over its key sequences.

    Key sequence indices are decoded least-significant key first and the
    matching character index is built with the same digit order.
    """
    for i in range(ngrams.shape[0]):
        total = 0.0
        for j in range(lengths[i]):
            index = ngrams[i, j]
            char_index = 0
            multiplier = 1
            for _ in range(arity):
                char_index += flat_grid[index % key_count] * multiplier
                index //= key_count
                multiplier *= lang_length
            total += freq[char_index]
        out[i] = total

#-----------------------------------------------------------------------------
# Scorer
#-----------------------------------------------------------------------------
class LayoutScorer:
    """
    Scores layouts against one statistics model and one set of corpus tables.

    Both inputs are read-only, so one scorer can be shared by all workers.
    """

    def __init__(self, stats: StatisticsModel, tables: NormalizedTables):
        self.stats = stats
        self.tables = tables
        self.geometry = stats.geometry
        self.lang_length = tables.lang_length
        if self.lang_length < self.geometry.key_count:
            raise ValueError(
                f"Alphabet of {self.lang_length} characters cannot fill "
                f"{self.geometry.key_count} keys"
            )

    def new_layout(self, name: str, grid) -> Layout:
        return Layout(name, grid, self.stats, self.lang_length)

    def _fill(self, flat_grid: np.ndarray, ngram_class: str, freq: np.ndarray,
              out: np.ndarray) -> None:
        table = self.stats.table(ngram_class)
        if len(table) == 0:
            return
        _sum_stat_frequencies_jit(flat_grid, table.ngrams, table.lengths, freq,
                                  ARITY[ngram_class], self.geometry.key_count,
                                  self.lang_length, out)

    def score(self, layout: Layout) -> float:
        """
        Recompute every score vector and the aggregate score of a layout.

        Returns:
            The new aggregate score
        """
        flat_grid = np.ascontiguousarray(layout.flat_grid)
        for ngram_class in ('mono', 'bi', 'tri', 'quad'):
            self._fill(flat_grid, ngram_class, self.tables.table(ngram_class),
                       layout.class_scores(ngram_class))
        for h in range(N_SKIPS):
            self._fill(flat_grid, 'skip', self.tables.skip[h], layout.skip_score[h])

        total = 0.0
        for ngram_class in ('mono', 'bi', 'tri', 'quad'):
            total += float(np.dot(layout.class_scores(ngram_class),
                                  self.stats.table(ngram_class).weights))
        skip_weights = self.stats.skip.weights
        for h in range(N_SKIPS):
            total += float(np.dot(layout.skip_score[h], skip_weights[:, h]))

        meta = self.stats.meta
        if len(meta):
            meta.evaluate(layout.score_vectors(), layout.meta_score)
            total += float(np.dot(layout.meta_score, meta.weights))
        layout.score = total
        return total

    def weighted_components(self, layout: Layout) -> Dict[str, float]:
        """Contribution of each n-gram class, and of the meta statistics, to the aggregate score."""
        components = {}
        for ngram_class in ('mono', 'bi', 'tri', 'quad'):
            components[ngram_class] = float(np.dot(layout.class_scores(ngram_class),
                                                   self.stats.table(ngram_class).weights))
        components['skip'] = float(np.sum(layout.skip_score * self.stats.skip.weights.T))
        components['meta'] = float(np.dot(layout.meta_score, self.stats.meta.weights))
        return components

#-----------------------------------------------------------------------------
# Model loading
#-----------------------------------------------------------------------------
def build_statistics(config: Config) -> Tuple[StatisticsModel, Dict[str, int], int]:
    """
    Build and freeze the statistics model described by a configuration.

    Returns:
        (stats, dropped_definitions_per_class, unknown_weight_count)
    """
    geometry = KeyboardGeometry(config.keyboard.rows, config.keyboard.cols)
    sources = []
    if config.keyboard.use_builtin_stats:
        sources.append(builtin_definitions(geometry, config.keyboard.fingers))
    if config.paths.stats_file:
        sources.append(load_custom_definitions(config.paths.stats_file, geometry))

    stats = StatisticsModel(geometry)
    stats.initialize(merge_definitions(*sources))
    if config.keyboard.use_builtin_stats:
        stats.initialize_meta(builtin_meta_definitions())
    unknown = stats.apply_weights(load_weights(config.paths.weights_file))
    dropped = stats.finalize()
    return stats, dropped, unknown

def load_layout_scorer(config: Config, verbose: bool = False) -> Tuple[LayoutScorer, Alphabet, RawCounts]:
    """
    Load corpus counts, normalize them and build the statistics model.

    Args:
        config: Configuration object containing file paths
        verbose: Print dropped rows and statistics

    Returns:
        (scorer, alphabet, raw_counts)
    """
    alphabet = Alphabet(config.corpus.alphabet)

    raw, dropped_rows = load_raw_counts(config.paths.corpus_folder, alphabet)
    tables = normalize_counts(raw)
    print(f"Loaded corpus counts from {config.paths.corpus_folder} "
          f"({alphabet.lang_length} characters)")

    stats, dropped_stats, unknown = build_statistics(config)
    counts = stats.counts
    print("Live statistics: " + ", ".join(f"{cls} {counts[cls]}" for cls in WEIGHT_CLASSES))

    if verbose:
        for ngram_class in NGRAM_CLASSES:
            if dropped_rows[ngram_class]:
                print(f"  Dropped {dropped_rows[ngram_class]} {ngram_class} count rows "
                      f"(wrong length or unsupported characters)")
            if dropped_stats[ngram_class]:
                print(f"  Dropped {dropped_stats[ngram_class]} {ngram_class} statistics "
                      f"(empty or without weight)")
        if dropped_stats[META_CLASS]:
            print(f"  Dropped {dropped_stats[META_CLASS]} meta statistics "
                  f"(without weight or reading a dropped statistic)")
        if unknown:
            print(f"  Ignored {unknown} weights for unknown statistics")

    return LayoutScorer(stats, tables), alphabet, raw
