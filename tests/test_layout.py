import numpy as np
import pytest

from layout import (MISMATCH, Layout, copy_layout, diff_layouts, format_layout,
                    list_layout_files, load_layout, parse_layout, save_layout)


@pytest.fixture
def layout(pair_stats, abc_grid):
    return Layout('abc', abc_grid, pair_stats, 8)


@pytest.mark.parametrize("grid", [
    [[0, 1, 2], [3, 4, 4]],     # repeated id
    [[0, 1, 2], [3, 4, 8]],     # id outside the alphabet
    [[0, 1, 2], [3, 4, -1]],
    [[0, 1], [2, 3]],           # wrong shape
    [[0, 1, 2, 3, 4, 5]],
])
def test_invalid_grids_are_rejected(pair_stats, grid):
    with pytest.raises(ValueError):
        Layout('bad', grid, pair_stats, 8)


def test_new_layout_has_zeroed_score_vectors(builtin_stats, abc_grid):
    layout = Layout('abc', abc_grid, builtin_stats, 8)
    assert layout.score == 0.0
    for ngram_class, vector in layout.score_vectors().items():
        if ngram_class == 'skip':
            assert vector.shape == (9, builtin_stats.counts['skip'])
        else:
            assert vector.shape == (builtin_stats.counts[ngram_class],)
        assert not vector.any()


def test_swap_is_self_inverse(layout):
    before = layout.grid.copy()
    layout.swap((0, 0), (1, 2))
    assert layout.grid[0, 0] == 5 and layout.grid[1, 2] == 0
    layout.swap((0, 0), (1, 2))
    assert np.array_equal(layout.grid, before)


@pytest.mark.parametrize("coords", [((0, 0), (0, 0)), ((0, 0), (2, 0)), ((0, 3), (1, 1))])
def test_invalid_swaps(layout, coords):
    with pytest.raises(ValueError):
        layout.swap(*coords)


def test_undo_swaps_restores_grid(layout):
    before = layout.grid.copy()
    swaps = [((0, 0), (0, 1)), ((0, 1), (1, 1)), ((0, 0), (1, 1)), ((1, 0), (0, 2))]
    layout.apply_swaps(swaps)
    assert not np.array_equal(layout.grid, before)
    layout.undo_swaps(swaps)
    assert np.array_equal(layout.grid, before)


def test_shuffle_is_a_permutation(layout):
    layout.shuffle(np.random.default_rng(3))
    assert sorted(layout.flat_grid.tolist()) == [0, 1, 2, 3, 4, 5]


def test_copy_shares_nothing(pair_scorer, layout):
    pair_scorer.score(layout)
    duplicate = layout.copy()

    layout.swap((0, 0), (1, 0))
    layout.bi_score[0] = -1.0
    layout.score = -1.0

    assert duplicate.grid.tolist() == [[0, 1, 2], [3, 4, 5]]
    assert duplicate.bi_score.tolist() == [100.0]
    assert duplicate.score == pytest.approx(100.0)
    assert duplicate.name == 'abc'


def test_copy_can_rename(layout):
    assert layout.copy(name='other').name == 'other'
    assert layout.name == 'abc'


def test_copy_layout_into_existing(pair_scorer, layout):
    pair_scorer.score(layout)
    dest = Layout('dest', [[5, 4, 3], [2, 1, 0]], layout.stats, 8)
    copy_layout(dest, layout)
    assert dest.name == 'abc'
    assert np.array_equal(dest.grid, layout.grid)
    assert dest.grid is not layout.grid
    assert dest.bi_score is not layout.bi_score
    assert dest.score == layout.score


def test_skeleton_copy_zeroes_scores(pair_scorer, layout):
    pair_scorer.score(layout)
    skeleton = layout.skeleton_copy()
    assert skeleton.name == 'abc'
    assert np.array_equal(skeleton.grid, layout.grid)
    assert skeleton.score == 0.0
    assert skeleton.bi_score.tolist() == [0.0]
    skeleton.swap((0, 0), (0, 1))
    assert layout.grid[0, 0] == 0


def test_snapshot_and_restore(pair_scorer, layout):
    pair_scorer.score(layout)
    snapshot = layout.snapshot_scores()
    layout.bi_score[0] = 3.0
    layout.score = 3.0
    layout.restore_scores(snapshot)
    assert layout.bi_score.tolist() == [100.0]
    assert layout.score == pytest.approx(100.0)


def test_diff_with_itself_is_zero(builtin_scorer, abc_grid):
    layout = builtin_scorer.new_layout('abc', abc_grid)
    builtin_scorer.score(layout)
    d = diff_layouts(layout, layout)
    assert d.score == 0.0
    assert not np.any(d.grid == MISMATCH)
    for vector in d.score_vectors().values():
        assert not vector.any()


def test_diff_marks_changed_keys(pair_scorer, abc_grid):
    high = pair_scorer.new_layout('high', abc_grid)
    low = high.copy(name='low')
    low.swap((0, 0), (1, 0))
    pair_scorer.score(high)
    pair_scorer.score(low)

    d = diff_layouts(high, low)
    assert d.grid.tolist() == [[MISMATCH, 1, 2], [MISMATCH, 4, 5]]
    assert d.score == pytest.approx(100.0)
    assert d.bi_score.tolist() == pytest.approx([100.0])
    assert diff_layouts(low, high).score == pytest.approx(-100.0)


def test_diff_requires_same_statistics(pair_stats, builtin_stats, abc_grid):
    a = Layout('a', abc_grid, pair_stats, 8)
    b = Layout('b', abc_grid, builtin_stats, 8)
    with pytest.raises(ValueError):
        diff_layouts(a, b)


def test_parse_and_format(pair_stats, alphabet):
    layout = parse_layout('test', "a b c\nd e f\n", alphabet, pair_stats)
    assert layout.grid.tolist() == [[0, 1, 2], [3, 4, 5]]
    assert format_layout(layout, alphabet) == "a b c\nd e f\n"
    assert layout.chars(alphabet) == [['a', 'b', 'c'], ['d', 'e', 'f']]


@pytest.mark.parametrize("text", ["a b c\n", "a b c\nd e\n", "a b c\nd e z\n",
                                  "a b c\nd e ff\n", "a b c\nd e a\n"])
def test_parse_rejects_bad_layouts(pair_stats, alphabet, text):
    with pytest.raises(ValueError):
        parse_layout('bad', text, alphabet, pair_stats)


def test_layout_files(tmp_path, pair_stats, alphabet, abc_grid):
    layout = Layout('abc', abc_grid, pair_stats, 8)
    path = tmp_path / "mine.txt"
    save_layout(layout, str(path), alphabet)
    (tmp_path / "notes.md").write_text("not a layout")

    loaded = load_layout(str(path), alphabet, pair_stats)
    assert loaded.name == 'mine'
    assert np.array_equal(loaded.grid, layout.grid)
    assert list_layout_files(str(tmp_path)) == [str(path)]

    with pytest.raises(FileNotFoundError):
        load_layout(str(tmp_path / "missing.txt"), alphabet, pair_stats)
    with pytest.raises(FileNotFoundError):
        list_layout_files(str(tmp_path / "missing"))


def test_meta_scores_are_copied_and_diffed(builtin_scorer, abc_grid):
    a = builtin_scorer.new_layout('a', abc_grid)
    b = builtin_scorer.new_layout('b', [[5, 4, 3], [2, 1, 0]])
    builtin_scorer.score(a)
    builtin_scorer.score(b)
    assert a.meta_score.shape == (builtin_scorer.stats.counts['meta'],)

    duplicate = a.copy()
    a.meta_score[0] += 1.0
    assert duplicate.meta_score[0] == pytest.approx(a.meta_score[0] - 1.0)

    d = diff_layouts(duplicate, b)
    np.testing.assert_allclose(d.meta_score, duplicate.meta_score - b.meta_score)
    assert 'meta' in d.score_vectors()
