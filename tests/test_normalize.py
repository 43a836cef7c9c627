import numpy as np
import pytest

from corpus import RawCounts
from normalize_input import TeeLogger, normalize_counts, to_percentages


def test_to_percentages():
    result = to_percentages(np.array([1, 3, 0, 4]))
    assert result.tolist() == [12.5, 37.5, 0.0, 50.0]


def test_zero_total_stays_zero():
    result = to_percentages(np.zeros(5, dtype=np.int64))
    assert result.tolist() == [0.0] * 5


def test_every_class_sums_to_100(random_counts):
    tables = normalize_counts(random_counts)
    for ngram_class in ('mono', 'bi', 'tri', 'quad'):
        assert tables.table(ngram_class).sum() == pytest.approx(100.0)
    for h in range(tables.skip.shape[0]):
        assert tables.skip[h].sum() == pytest.approx(100.0)


def test_skip_distances_are_normalized_independently():
    raw = RawCounts.empty(4)
    raw.add([0, 1], 10, skip=1)
    raw.add([0, 1], 1, skip=2)
    raw.add([2, 3], 3, skip=2)
    tables = normalize_counts(raw)

    assert tables.skip[0, 1] == pytest.approx(100.0)
    assert tables.skip[1, 1] == pytest.approx(25.0)
    assert tables.skip[1, 2 * 4 + 3] == pytest.approx(75.0)
    assert tables.skip[2:].sum() == 0.0


def test_empty_corpus_normalizes_to_zero():
    tables = normalize_counts(RawCounts.empty(4))
    for ngram_class in ('mono', 'bi', 'tri', 'quad', 'skip'):
        assert not tables.table(ngram_class).any()


def test_tables_are_read_only(ab_counts):
    tables = normalize_counts(ab_counts)
    with pytest.raises(ValueError):
        tables.bi[0] = 1.0
    assert tables.bi[1] == pytest.approx(100.0)
    assert tables.lang_length == 8


def test_tee_logger_writes_both(tmp_path, capsys):
    log_path = tmp_path / "run.log"
    logger = TeeLogger(str(log_path))
    logger.write("hello\n")
    logger.flush()
    logger.close()

    assert capsys.readouterr().out == "hello\n"
    assert log_path.read_text() == "hello\n"
