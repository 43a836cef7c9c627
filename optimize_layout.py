# optimize_layout.py
"""
Keyboard layout scoring and improvement

Scores keyboard layouts against corpus n-gram frequencies and a weighted set
of typing statistics (same finger bigrams, rolls, hand alternation, ...), and
improves layouts by simulated-annealing key swaps.

Usage:
    # Score a layout and show its statistics
    python optimize_layout.py analyze --layout qwerty

    # Difference between two layouts
    python optimize_layout.py compare --layout qwerty --other dvorak

    # Rank every layout in the layout folder
    python optimize_layout.py rank

    # Score random shuffles of a layout
    python optimize_layout.py generate --layout qwerty

    # Improve a layout by swapping keys
    python optimize_layout.py improve --layout qwerty --rounds 50000 --threads 8

"""

import argparse
import os
import sys
import time
from datetime import datetime

from config import Config, load_config, print_config_summary, validate_config
from corpus import Alphabet
from display import (print_optimization_header, print_layout_stats, print_layout_diff,
                     print_ranking, print_search_summary, visualize_keyboard_layout,
                     save_ranking_to_csv)
from layout import Layout, diff_layouts, list_layout_files, load_layout
from normalize_input import TeeLogger
from ranking import RankingList
from scoring import LayoutScorer, load_layout_scorer
from search import SwapOptimizer, generate_layouts
from validation import run_validation_suite

MODES = ('analyze', 'compare', 'rank', 'generate', 'improve')

#-----------------------------------------------------------------------------
# Helpers
#-----------------------------------------------------------------------------
def resolve_layout_path(layout: str, config: Config) -> str:
    """Accept either a path to a layout file or a layout name in the layout folder."""
    if os.path.exists(layout):
        return layout
    return os.path.join(config.paths.layout_folder, f"{layout}.txt")

def load_scored_layout(layout: str, config: Config, scorer: LayoutScorer,
                       alphabet: Alphabet) -> Layout:
    path = resolve_layout_path(layout, config)
    loaded = load_layout(path, alphabet, scorer.stats)
    scorer.score(loaded)
    return loaded

def print_components(scorer: LayoutScorer, layout: Layout) -> None:
    print("\n  Weighted contribution by class:")
    for ngram_class, value in scorer.weighted_components(layout).items():
        print(f"    {ngram_class:<6} {value:12.4f}")

def save_results(ranking: RankingList, config: Config, alphabet: Alphabet, mode: str) -> None:
    if len(ranking) == 0:
        print("\nNo layouts to save!")
        return
    csv_path = save_ranking_to_csv(ranking, config, alphabet, mode)
    print(f"\nResults saved to: {csv_path}")

#-----------------------------------------------------------------------------
# Modes
#-----------------------------------------------------------------------------
def run_analyze(config: Config, scorer: LayoutScorer, alphabet: Alphabet,
                layout_name: str, verbose: bool = False) -> None:
    """Score one layout and print its statistics."""
    layout = load_scored_layout(layout_name, config, scorer, alphabet)
    visualize_keyboard_layout(layout, alphabet)
    print_layout_stats(layout, scorer.stats, verbose=verbose)
    if verbose:
        print_components(scorer, layout)

def run_compare(config: Config, scorer: LayoutScorer, alphabet: Alphabet,
                layout_name: str, other_name: str, verbose: bool = False) -> None:
    """Print the difference between two layouts (first minus second)."""
    first = load_scored_layout(layout_name, config, scorer, alphabet)
    second = load_scored_layout(other_name, config, scorer, alphabet)

    print(f"\n{first.name}: {first.score:.4f}")
    print(f"{second.name}: {second.score:.4f}")
    print_layout_diff(diff_layouts(first, second), alphabet, scorer.stats, verbose=verbose)

def run_rank(config: Config, scorer: LayoutScorer, alphabet: Alphabet,
             n_results: int) -> None:
    """Score and rank every layout file in the layout folder."""
    paths = list_layout_files(config.paths.layout_folder)
    if not paths:
        print(f"\nNo layout files in {config.paths.layout_folder}")
        return

    ranking = RankingList()
    for path in paths:
        layout = load_layout(path, alphabet, scorer.stats)
        scorer.score(layout)
        ranking.insert(layout)
    print(f"\nScored {len(paths)} layouts from {config.paths.layout_folder}")

    print_ranking(ranking, n_results)
    save_results(ranking, config, alphabet, 'rank')

def run_generate(config: Config, scorer: LayoutScorer, alphabet: Alphabet,
                 layout_name: str, n_results: int, verbose: bool = False) -> None:
    """Score random shuffles of a layout and keep the best."""
    start = load_scored_layout(layout_name, config, scorer, alphabet)
    count = config.search.generate_count
    print(f"\nGenerating {count:,} random layouts from {start.name}...")

    ranking = RankingList(max_size=n_results)
    start_time = time.time()
    best = generate_layouts(scorer, start, count, ranking, seed=config.search.seed,
                            show_progress=config.visualization.show_progress_bar)
    elapsed_time = time.time() - start_time

    visualize_keyboard_layout(best, alphabet, title=f"{best.name} (best generated)")
    print_layout_stats(best, scorer.stats, verbose=verbose)
    print_ranking(ranking, n_results)
    print(f"\n  Total time: {elapsed_time:.2f}s")
    save_results(ranking, config, alphabet, 'generate')

def run_improve(config: Config, scorer: LayoutScorer, alphabet: Alphabet,
                layout_name: str, n_results: int, verbose: bool = False) -> None:
    """Improve a layout by simulated-annealing key swaps."""
    start = load_scored_layout(layout_name, config, scorer, alphabet)
    print("\nStarting Layout:")
    visualize_keyboard_layout(start, alphabet)
    print(f"  Score: {start.score:.4f}")

    optimizer = SwapOptimizer(scorer, config.search)
    print(f"\nImproving with {config.search.threads} candidates, "
          f"{optimizer.schedule.get_mode_name()} cooling")

    ranking = RankingList(max_size=n_results)
    best, stats = optimizer.improve(start, ranking,
                                    show_progress=config.visualization.show_progress_bar)

    print("\nBest Layout:")
    visualize_keyboard_layout(best, alphabet)
    print_layout_stats(best, scorer.stats, verbose=verbose)
    print("\nChange from starting layout:")
    print_layout_diff(diff_layouts(best, start), alphabet, scorer.stats, verbose=verbose)

    print_ranking(ranking, n_results)
    print_search_summary(stats)
    save_results(ranking, config, alphabet, 'improve')

#-----------------------------------------------------------------------------
# Command-line interface
#-----------------------------------------------------------------------------
def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Score and improve keyboard layouts against corpus n-gram statistics.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score qwerty with a full per-statistic breakdown
  python optimize_layout.py analyze --layout qwerty --verbose

  # Compare two layout files
  python optimize_layout.py compare --layout layouts/qwerty.txt --other layouts/dvorak.txt

  # Improve with a fixed seed and a time limit, logging the run
  python optimize_layout.py improve --layout qwerty --seed 1 --time-limit 600 --log

  # Run the validation suite first
  python optimize_layout.py analyze --validate
        """
    )

    parser.add_argument('mode', choices=MODES,
                        help='What to do with the layout(s)')

    # Basic options
    parser.add_argument('--config', type=str, default='config.yaml',
                        help='Path to configuration file (default: config.yaml)')
    parser.add_argument('--layout', type=str, default='qwerty',
                        help='Layout file, or layout name in the layout folder (default: qwerty)')
    parser.add_argument('--other', type=str, default='dvorak',
                        help='Second layout for compare (default: dvorak)')
    parser.add_argument('--verbose', action='store_true',
                        help='Show detailed scoring breakdown')
    parser.add_argument('--log', action='store_true',
                        help='Also write console output to a log file in the results folder')

    # Search overrides
    parser.add_argument('--threads', type=int, default=None,
                        help='Number of candidate layouts searched in parallel')
    parser.add_argument('--rounds', type=str, default=None,
                        help="Maximum search rounds (number or 'Inf')")
    parser.add_argument('--time-limit', type=str, default=None,
                        help="Time limit in seconds (number or 'Inf')")
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed')
    parser.add_argument('--n-results', type=int, default=None,
                        help='Number of ranked layouts to keep and show')

    # Validation options
    parser.add_argument('--validate', action='store_true',
                        help='Run validation suite before the selected mode')

    return parser.parse_args(argv)

def apply_overrides(config: Config, args) -> None:
    """Apply command-line search overrides and revalidate."""
    search = config.search
    if args.threads is not None:
        search.threads = args.threads
    if args.rounds is not None:
        search.max_rounds = args.rounds
    if args.time_limit is not None:
        search.time_limit = args.time_limit
    if args.seed is not None:
        search.seed = args.seed
    if args.n_results is not None:
        search.ranking_size = args.n_results
    # Re-run limit parsing for overridden values
    search.__post_init__()
    validate_config(config)

def run(args) -> None:
    config = load_config(args.config)
    apply_overrides(config, args)
    verbose = args.verbose or config.visualization.verbose_output

    print_optimization_header(args.mode)
    print_config_summary(config)

    print("\nLoading scoring data...")
    scorer, alphabet, raw = load_layout_scorer(config, verbose=verbose)

    if args.validate:
        print("🧪 Running validation suite...")
        start = load_layout(resolve_layout_path(args.layout, config), alphabet, scorer.stats)
        if not run_validation_suite(scorer, start, raw):
            print("❌ Validation failed. Please fix issues before continuing.")
            return
        print("✅ Validation passed!\n")

    n_results = config.search.ranking_size
    if args.mode == 'analyze':
        run_analyze(config, scorer, alphabet, args.layout, verbose)
    elif args.mode == 'compare':
        run_compare(config, scorer, alphabet, args.layout, args.other, verbose)
    elif args.mode == 'rank':
        run_rank(config, scorer, alphabet, n_results)
    elif args.mode == 'generate':
        run_generate(config, scorer, alphabet, args.layout, n_results, verbose)
    else:
        run_improve(config, scorer, alphabet, args.layout, n_results, verbose)

def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)

    logger = None
    try:
        if args.log:
            # The results folder comes from the config; peek at it before teeing
            config = load_config(args.config)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_path = os.path.join(config.paths.layout_results_folder,
                                    f"{args.mode}_log_{timestamp}.txt")
            logger = TeeLogger(log_path)
            sys.stdout = logger

        run(args)
    except (ValueError, FileNotFoundError, MemoryError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if logger is not None:
            sys.stdout = logger.terminal
            logger.close()
            print(f"Log saved to: {logger.log.name}")

if __name__ == "__main__":
    main()
