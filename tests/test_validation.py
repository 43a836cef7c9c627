from normalize_input import normalize_counts
from validation import (ValidationResult, ValidationSuite, check_copy_isolation,
                        check_diff_identity, check_index_round_trip, check_normalization,
                        check_scoring_consistency, check_swap_inverse, run_validation_suite)


def test_individual_checks_pass(builtin_scorer, random_counts, abc_grid):
    layout = builtin_scorer.new_layout('abc', abc_grid)
    results = [
        check_index_round_trip(builtin_scorer.geometry, n_samples=50),
        check_normalization(random_counts, builtin_scorer.tables),
        check_scoring_consistency(builtin_scorer, layout),
        check_swap_inverse(builtin_scorer, layout, n_tests=10),
        check_diff_identity(builtin_scorer, layout),
        check_copy_isolation(layout),
    ]
    for result in results:
        assert result.passed, str(result)


def test_normalization_check_detects_mismatch(ab_counts, random_counts):
    result = check_normalization(random_counts, normalize_counts(ab_counts))
    assert not result.passed
    assert 'mono' in result.details


def test_suite_summary(capsys):
    suite = ValidationSuite([
        ValidationResult("ok", True, "fine"),
        ValidationResult("broken", False, "bad", {"reason": "test"}),
    ])
    assert not suite.all_passed
    assert (suite.passed_count, suite.failed_count) == (1, 1)
    suite.print_summary()
    out = capsys.readouterr().out
    assert "1/2 checks passed" in out
    assert "reason: test" in out


def test_run_validation_suite(pair_scorer, ab_counts, abc_grid, capsys):
    layout = pair_scorer.new_layout('abc', abc_grid)
    assert run_validation_suite(pair_scorer, layout, ab_counts, quick=True)
    assert "6/6 checks passed" in capsys.readouterr().out
