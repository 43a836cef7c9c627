"""Shared fixtures: a 2x3 keyboard and an 8-character alphabet."""

import numpy as np
import pytest

from corpus import Alphabet, RawCounts
from ngram_index import KeyboardGeometry, N_SKIPS
from normalize_input import normalize_counts
from scoring import LayoutScorer
from stat_definitions import builtin_definitions, builtin_meta_definitions
from stats import StatisticsModel

ALPHABET = "abcdefgh"


@pytest.fixture
def geometry():
    return KeyboardGeometry(2, 3)


@pytest.fixture
def alphabet():
    return Alphabet(ALPHABET)


@pytest.fixture
def make_stats():
    """Build and finalize a statistics model from definitions and weights."""
    def _make(geometry, definitions, weights, meta=()):
        stats = StatisticsModel(geometry)
        stats.initialize(definitions)
        stats.initialize_meta(meta)
        stats.apply_weights(weights)
        stats.finalize()
        return stats
    return _make


@pytest.fixture
def pair_stats(geometry, make_stats):
    """A single bigram statistic on the first two top-row keys, weight 1."""
    ngrams = [geometry.flatten((0, 0), (0, 1))]
    return make_stats(geometry, {'bi': [('Top Pair', ngrams)]}, {'bi': {'Top Pair': 1.0}})


@pytest.fixture
def ab_counts(alphabet):
    """A corpus where the only n-gram is the bigram 'ab'."""
    raw = RawCounts.empty(alphabet.lang_length)
    raw.add(alphabet.encode("ab"), 100)
    return raw


@pytest.fixture
def pair_scorer(pair_stats, ab_counts):
    return LayoutScorer(pair_stats, normalize_counts(ab_counts))


@pytest.fixture
def random_counts(alphabet):
    rng = np.random.default_rng(0)
    L = alphabet.lang_length
    raw = RawCounts.empty(L)
    raw.mono[:] = rng.integers(0, 100, size=L)
    raw.bi[:] = rng.integers(0, 100, size=L ** 2)
    raw.tri[:] = rng.integers(0, 10, size=L ** 3)
    raw.quad[:] = rng.integers(0, 5, size=L ** 4)
    raw.skip[:] = rng.integers(0, 50, size=(N_SKIPS, L ** 2))
    return raw


@pytest.fixture
def builtin_stats(geometry, make_stats):
    """Every built-in statistic and meta statistic, each given a distinct nonzero weight."""
    definitions = builtin_definitions(geometry)
    meta = builtin_meta_definitions()
    weights = {}
    for ngram_class, entries in definitions.items():
        weights[ngram_class] = {}
        for i, (name, _) in enumerate(entries):
            if ngram_class == 'skip':
                weights[ngram_class][name] = [-(h + 1) * 0.5 for h in range(N_SKIPS)]
            else:
                weights[ngram_class][name] = (i + 1) * (-1) ** i
    weights['meta'] = {d.name: 0.5 * (i + 1) for i, d in enumerate(meta)}
    return make_stats(geometry, definitions, weights, meta)


@pytest.fixture
def builtin_scorer(builtin_stats, random_counts):
    return LayoutScorer(builtin_stats, normalize_counts(random_counts))


@pytest.fixture
def abc_grid():
    return [[0, 1, 2], [3, 4, 5]]
