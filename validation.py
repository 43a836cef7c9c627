# validation.py
"""
Validation of a loaded scoring model.

Runs self-checks against the actual corpus tables and statistics in use:
- Index encoding round trips
- Normalized table totals
- Scoring consistency
- Swap self-inverse law (grid and score vectors)
- Layout diff identity
- Copy isolation
"""

import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass

from corpus import RawCounts
from layout import Layout, MISMATCH, diff_layouts
from ngram_index import KeyboardGeometry, N_SKIPS, SKIP_DISTANCES
from normalize_input import NormalizedTables
from scoring import LayoutScorer
from search import gen_swaps

#-----------------------------------------------------------------------------
# Validation result classes
#-----------------------------------------------------------------------------
@dataclass
class ValidationResult:
    """Result of a single validation check."""
    test_name: str
    passed: bool
    message: str
    details: Optional[Dict] = None

    def __str__(self) -> str:
        status = "✅ PASS" if self.passed else "❌ FAIL"
        return f"{status}: {self.test_name} - {self.message}"

@dataclass
class ValidationSuite:
    """Results from a complete validation suite."""
    results: List[ValidationResult]

    @property
    def all_passed(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.passed)

    def print_summary(self):
        """Print validation summary."""
        print(f"\nValidation Summary: {self.passed_count}/{len(self.results)} checks passed")

        for result in self.results:
            print(f"  {result}")
            if result.details and not result.passed:
                for key, value in result.details.items():
                    print(f"    {key}: {value}")

        if self.all_passed:
            print("\n🎉 All validation checks passed!")
        else:
            print(f"\n⚠️  {self.failed_count} check(s) failed - review results above")

#-----------------------------------------------------------------------------
# Core validation functions
#-----------------------------------------------------------------------------
def check_index_round_trip(geometry: KeyboardGeometry, n_samples: int = 1000,
                           seed: int = 42) -> ValidationResult:
    """unflatten(flatten(c)) == c for random key sequences of every arity and skip distance."""
    rng = np.random.default_rng(seed)
    coords = geometry.coordinates()
    failures = 0

    for arity in (1, 2, 3, 4):
        for _ in range(n_samples):
            sequence = tuple(coords[i] for i in rng.integers(0, len(coords), size=arity))
            if geometry.unflatten(geometry.flatten(*sequence), arity) != sequence:
                failures += 1

    for skip in SKIP_DISTANCES:
        for _ in range(n_samples // N_SKIPS + 1):
            c0, c1 = (coords[i] for i in rng.integers(0, len(coords), size=2))
            if geometry.unflatten_skip(geometry.flatten_skip(skip, c0, c1)) != (skip, c0, c1):
                failures += 1

    return ValidationResult("Index Round Trip", failures == 0,
                            f"{failures} mismatched key sequences", {"failures": failures})

def check_normalization(raw: RawCounts, tables: NormalizedTables,
                        tolerance: float = 1e-6) -> ValidationResult:
    """Each class (and skip distance) sums to 100, or to 0 when it has no counts."""
    problems = {}
    pairs = [(cls, getattr(raw, cls), tables.table(cls)) for cls in ('mono', 'bi', 'tri', 'quad')]
    pairs += [(f"skip{h + 1}", raw.skip[h], tables.skip[h]) for h in range(N_SKIPS)]

    for name, counts, percentages in pairs:
        expected = 100.0 if counts.sum() > 0 else 0.0
        total = float(percentages.sum())
        if abs(total - expected) > tolerance:
            problems[name] = total

    passed = not problems
    message = "all class totals correct" if passed else f"{len(problems)} class totals off"
    return ValidationResult("Normalization Totals", passed, message, problems or None)

def check_scoring_consistency(scorer: LayoutScorer, layout: Layout) -> ValidationResult:
    """Scoring the same grid twice gives identical results."""
    first = layout.copy()
    second = layout.copy()
    score1 = scorer.score(first)
    score2 = scorer.score(second)
    vectors_equal = all(
        np.array_equal(vector, second.class_scores(cls))
        for cls, vector in first.score_vectors().items()
    )
    passed = score1 == score2 and vectors_equal
    return ValidationResult("Scoring Consistency", passed,
                            f"scores {score1:.6f} / {score2:.6f}")

def check_swap_inverse(scorer: LayoutScorer, layout: Layout, n_tests: int = 50,
                       seed: int = 42) -> ValidationResult:
    """Applying a swap twice restores the grid and, after rescoring, every score vector."""
    rng = np.random.default_rng(seed)
    candidate = layout.copy()
    scorer.score(candidate)
    failures = 0

    for _ in range(n_tests):
        before = candidate.snapshot_scores()
        grid_before = candidate.grid.copy()
        (swap,) = gen_swaps(rng, 1, candidate.geometry)
        candidate.swap(*swap)
        candidate.swap(*swap)
        scorer.score(candidate)
        score, vectors = before
        same_vectors = all(np.allclose(vectors[cls], candidate.class_scores(cls))
                           for cls in vectors)
        if not (np.array_equal(grid_before, candidate.grid) and same_vectors
                and np.isclose(score, candidate.score)):
            failures += 1

    return ValidationResult("Swap Self-Inverse", failures == 0,
                            f"{n_tests} double swaps, {failures} failures")

def check_diff_identity(scorer: LayoutScorer, layout: Layout) -> ValidationResult:
    """diff(a, a) has zero score, zero vectors and no mismatched keys."""
    scored = layout.copy()
    scorer.score(scored)
    d = diff_layouts(scored, scored)
    nonzero = sum(int(np.count_nonzero(vec)) for vec in d.score_vectors().values())
    mismatches = int(np.sum(d.grid == MISMATCH))
    passed = d.score == 0 and nonzero == 0 and mismatches == 0
    return ValidationResult("Diff Identity", passed,
                            f"score {d.score}, {nonzero} nonzero entries, {mismatches} mismatched keys")

def check_copy_isolation(layout: Layout) -> ValidationResult:
    """Mutating a layout after copying it leaves the copy unchanged."""
    source = layout.copy()
    duplicate = source.copy()
    coords = source.geometry.coordinates()
    source.swap(coords[0], coords[-1])
    source.mono_score += 1.0
    passed = (not np.array_equal(source.grid, duplicate.grid)
              and np.array_equal(duplicate.grid, layout.grid)
              and np.array_equal(duplicate.mono_score, layout.mono_score))
    return ValidationResult("Copy Isolation", passed,
                            "copy unaffected" if passed else "copy shares state with source")

def run_validation_suite(scorer: LayoutScorer, layout: Layout, raw: RawCounts,
                         quick: bool = False) -> bool:
    """
    Run every check and print a summary.

    Args:
        scorer: Loaded scorer
        layout: A valid layout on the scorer's keyboard
        raw: Raw counts the scorer's tables were normalized from
        quick: Use fewer random samples

    Returns:
        True if every check passed
    """
    n = 100 if quick else 1000
    suite = ValidationSuite([
        check_index_round_trip(scorer.geometry, n_samples=n),
        check_normalization(raw, scorer.tables),
        check_scoring_consistency(scorer, layout),
        check_swap_inverse(scorer, layout, n_tests=n // 20),
        check_diff_identity(scorer, layout),
        check_copy_isolation(layout),
    ])
    suite.print_summary()
    return suite.all_passed
