import threading

import pytest

from ranking import RankingList


def test_descending_order_with_stable_ties():
    ranking = RankingList()
    for name, score in [('first', 50.0), ('second', 80.0), ('third', 30.0), ('fourth', 80.0)]:
        ranking.insert_entry(name, score)
    assert ranking.scores() == [80.0, 80.0, 50.0, 30.0]
    assert [entry.name for entry in ranking] == ['second', 'fourth', 'first', 'third']
    assert ranking.best.name == 'second'


def test_insert_returns_rank():
    ranking = RankingList()
    assert ranking.insert_entry('a', 1.0) == 0
    assert ranking.insert_entry('b', 3.0) == 0
    assert ranking.insert_entry('c', 2.0) == 1
    assert ranking.insert_entry('d', 2.0) == 2


def test_bounded_ranking_drops_lowest():
    ranking = RankingList(max_size=2)
    ranking.insert_entry('a', 1.0)
    ranking.insert_entry('b', 3.0)
    assert ranking.insert_entry('c', 2.0) == 1
    assert ranking.insert_entry('d', 0.5) == -1
    assert ranking.insert_entry('e', 2.0) == -1
    assert [entry.name for entry in ranking] == ['b', 'c']


def test_insert_stores_an_independent_copy(pair_scorer, abc_grid):
    layout = pair_scorer.new_layout('abc', abc_grid)
    pair_scorer.score(layout)
    ranking = RankingList()
    ranking.insert(layout)

    layout.swap((0, 0), (1, 1))
    layout.score = -5.0
    layout.name = 'renamed'

    entry = ranking[0]
    assert entry.name == 'abc'
    assert entry.score == pytest.approx(100.0)
    assert entry.layout.grid.tolist() == abc_grid
    assert entry.layout.score == pytest.approx(100.0)


def test_insert_without_layout(pair_scorer, abc_grid):
    layout = pair_scorer.new_layout('abc', abc_grid)
    ranking = RankingList()
    ranking.insert(layout, keep_layout=False)
    assert ranking[0].layout is None


def test_free_all_is_idempotent():
    ranking = RankingList()
    ranking.insert_entry('a', 1.0)
    ranking.free_all()
    ranking.free_all()
    assert len(ranking) == 0
    assert ranking.best is None


def test_concurrent_inserts():
    ranking = RankingList()

    def insert_many(offset):
        for i in range(200):
            ranking.insert_entry(f"{offset}-{i}", float((i * 7 + offset) % 50))

    threads = [threading.Thread(target=insert_many, args=(t,)) for t in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    scores = ranking.scores()
    assert len(scores) == 800
    assert scores == sorted(scores, reverse=True)
