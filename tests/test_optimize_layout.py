import csv

import pytest
import yaml

from optimize_layout import main


@pytest.fixture
def project(tmp_path):
    """A complete small project: corpus, weights, layouts and config."""
    corpus = tmp_path / "corpus"
    corpus.mkdir()
    (corpus / "mono.csv").write_text("ngram,count\na,50\nb,30\nc,20\n")
    (corpus / "bi.csv").write_text("ngram,count\nab,60\nba,25\ncd,15\n")
    (corpus / "tri.csv").write_text("ngram,count\nabc,10\n")
    (corpus / "skip.csv").write_text("skip,ngram,count\n1,ac,5\n2,ae,3\n")

    (tmp_path / "weights.yaml").write_text(yaml.safe_dump({
        'mono': {'Left Pinky Usage': -1.0, 'Row 0 Usage': 0.5},
        'bi': {'Same Finger Bigram': -2.0, 'Hand Alternation': 1.0},
        'tri': {'Alternation': 0.5},
        'skip': {'Same Finger Skipgram': [-1.0] * 9},
        'meta': {'Hand Balance': -1.0},
    }))

    layouts = tmp_path / "layouts"
    layouts.mkdir()
    (layouts / "plain.txt").write_text("a b c\nd e f\n")
    (layouts / "other.txt").write_text("c b a\nf e d\n")

    config = {
        'paths': {
            'corpus_folder': str(corpus),
            'weights_file': str(tmp_path / "weights.yaml"),
            'layout_folder': str(layouts),
            'layout_results_folder': str(tmp_path / "results"),
        },
        'keyboard': {'rows': 2, 'cols': 3},
        'corpus': {'alphabet': 'abcdefgh'},
        'search': {'threads': 2, 'max_rounds': 50, 'seed': 3, 'generate_count': 20},
        'visualization': {'show_progress_bar': False},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config))
    return tmp_path, str(path)


def result_csvs(tmp_path, mode):
    return sorted((tmp_path / "results").glob(f"{mode}_results_*.csv"))


def test_analyze(project, capsys):
    _, config = project
    main(['analyze', '--config', config, '--layout', 'plain', '--verbose'])
    out = capsys.readouterr().out
    assert "Layout: plain" in out
    assert "Hand Alternation" in out
    assert "Weighted contribution by class" in out
    assert "Meta statistics" in out
    assert "Hand Balance" in out


def test_compare(project, capsys):
    tmp_path, config = project
    main(['compare', '--config', config, '--layout', 'plain',
          '--other', str(tmp_path / "layouts" / "other.txt")])
    out = capsys.readouterr().out
    assert "Layout: plain - other" in out
    assert "Keys that differ: 4" in out


def test_rank(project, capsys):
    tmp_path, config = project
    main(['rank', '--config', config])
    out = capsys.readouterr().out
    assert "Scored 2 layouts" in out

    (path,) = result_csvs(tmp_path, 'rank')
    with open(path, newline='') as f:
        rows = list(csv.DictReader(f))
    assert {row['Name'] for row in rows} == {'plain', 'other'}
    scores = [float(row['Score']) for row in rows]
    assert scores == sorted(scores, reverse=True)


def test_generate(project, capsys):
    tmp_path, config = project
    main(['generate', '--config', config, '--layout', 'plain', '--n-results', '3'])
    (path,) = result_csvs(tmp_path, 'generate')
    with open(path, newline='') as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 3
    for row in rows:
        assert row['Layout File'].endswith('.txt')


def test_improve_with_validation_and_log(project, capsys):
    tmp_path, config = project
    main(['improve', '--config', config, '--layout', 'plain', '--rounds', '30',
          '--threads', '1', '--validate', '--log'])
    out = capsys.readouterr().out
    assert "All validation checks passed" in out
    assert "Search Summary" in out
    assert "Rounds: 30" in out
    assert len(result_csvs(tmp_path, 'improve')) == 1
    (log,) = (tmp_path / "results").glob("improve_log_*.txt")
    assert "Search Summary" in log.read_text()


@pytest.mark.parametrize("argv", [
    ['analyze', '--config', 'missing.yaml'],
    ['analyze', '--layout', 'nosuchlayout'],
    ['improve', '--threads', '0'],
])
def test_errors_exit_with_status_1(project, capsys, argv):
    _, config = project
    if '--config' not in argv:
        argv = argv + ['--config', config]
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == 1
    assert "Error:" in capsys.readouterr().err
