import itertools

import numpy as np
import pytest

from ngram_index import (KeyboardGeometry, N_SKIPS, SKIP_DISTANCES, flatten_chars,
                         flatten_skip_chars, unflatten_chars, unflatten_skip_chars)


@pytest.mark.parametrize("arity", [1, 2, 3, 4])
def test_flatten_unflatten_inverse(geometry, arity):
    coords = geometry.coordinates()
    for sequence in itertools.product(coords, repeat=arity):
        index = geometry.flatten(*sequence)
        assert 0 <= index < geometry.dim(arity)
        assert geometry.unflatten(index, arity) == sequence


@pytest.mark.parametrize("arity", [1, 2, 3])
def test_flatten_is_a_bijection(geometry, arity):
    coords = geometry.coordinates()
    indices = {geometry.flatten(*seq) for seq in itertools.product(coords, repeat=arity)}
    assert indices == set(range(geometry.dim(arity)))


def test_first_key_is_most_significant(geometry):
    assert geometry.flatten((0, 0), (0, 1)) == 1
    assert geometry.flatten((0, 1), (0, 0)) == geometry.key_count
    assert geometry.flatten((1, 2), (0, 0), (0, 0)) == 5 * geometry.key_count ** 2


def test_skip_index_has_leading_distance_digit(geometry):
    pair = geometry.flatten((0, 2), (1, 0))
    assert geometry.flatten_skip(1, (0, 2), (1, 0)) == pair
    assert geometry.flatten_skip(4, (0, 2), (1, 0)) == 3 * geometry.dim(2) + pair

    for skip in SKIP_DISTANCES:
        for c0, c1 in itertools.product(geometry.coordinates(), repeat=2):
            index = geometry.flatten_skip(skip, c0, c1)
            assert index < geometry.skip_dim
            assert geometry.unflatten_skip(index) == (skip, c0, c1)


def test_skip_dim():
    geometry = KeyboardGeometry()
    assert geometry.key_count == 36
    assert geometry.skip_dim == N_SKIPS * 36 * 36


@pytest.mark.parametrize("arity", [1, 2, 3, 4])
def test_key_sequences_match_unflatten(geometry, arity):
    keys = geometry.key_sequences(arity)
    assert keys.shape == (geometry.dim(arity), arity)
    for index in (0, 1, geometry.dim(arity) // 2, geometry.dim(arity) - 1):
        expected = [geometry.key_index(*c) for c in geometry.unflatten(index, arity)]
        assert keys[index].tolist() == expected


def test_character_indices():
    assert flatten_chars([1, 2], 8) == 10
    assert unflatten_chars(10, 2, 8) == (1, 2)
    assert unflatten_chars(flatten_chars([7, 0, 3, 5], 8), 4, 8) == (7, 0, 3, 5)
    assert flatten_skip_chars(1, 1, 2, 8) == 10
    assert unflatten_skip_chars(flatten_skip_chars(3, 1, 2, 8), 8) == (3, 1, 2)


def test_contains(geometry):
    assert geometry.contains((1, 2))
    assert not geometry.contains((2, 0))
    assert not geometry.contains((0, -1))
    assert geometry.key_coordinate(geometry.key_index(1, 1)) == (1, 1)
    assert np.all(geometry.key_sequences(1)[:, 0] == np.arange(geometry.key_count))
