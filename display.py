# display.py
"""
Display, visualization, and output formatting for layout search.
"""

import csv
import os
from datetime import datetime
from typing import Optional

import numpy as np

from config import Config
from corpus import Alphabet
from layout import Layout, MISMATCH, save_layout
from ngram_index import SKIP_DISTANCES
from ranking import RankingList
from search import SearchStats
from stats import StatisticsModel

#-----------------------------------------------------------------------------
# Keyboard visualization
#-----------------------------------------------------------------------------
def visualize_keyboard_layout(layout: Layout, alphabet: Alphabet, title: Optional[str] = None) -> None:
    """
    Print ASCII visual representation of a keyboard layout.

    Keys that differ between two diffed layouts are shown as '*'.
    """
    cols = layout.geometry.cols
    half = cols // 2
    width = cols * 6 + 1
    title = layout.name if title is None else title

    def separator(left: str, mid: str, center: str, right: str) -> str:
        cells = []
        for c in range(cols):
            cells.append("─────")
            if c < cols - 1:
                cells.append(center if c == half - 1 else mid)
        return left + "".join(cells) + right

    print("╭" + "─" * (width - 2) + "╮")
    print(f"│ Layout: {title:<{width - 12}} │")
    print(separator("├", "┬", "╥", "┤"))
    for r, row in enumerate(layout.chars(alphabet)):
        cells = []
        for c, char in enumerate(row):
            cells.append(f" {char:^3} ")
            if c < cols - 1:
                cells.append("║" if c == half - 1 else "│")
        print("│" + "".join(cells) + "│")
        if r < layout.geometry.rows - 1:
            print(separator("├", "┼", "╫", "┤"))
    print(separator("╰", "┴", "╨", "╯"))

#-----------------------------------------------------------------------------
# Results display
#-----------------------------------------------------------------------------
def print_optimization_header(mode: str) -> None:
    """Print header for a run."""
    print(f"\n" + "="*60)
    print(f"{mode.upper()}")
    print("="*60)

def print_layout_stats(layout: Layout, stats: StatisticsModel, verbose: bool = False,
                       is_diff: bool = False) -> None:
    """
    Print the score and per-statistic values of a scored layout.

    Args:
        layout: Scored layout (or a diff of two layouts)
        stats: Statistics the layout was scored against
        verbose: Also print zero-valued entries and every skip distance
        is_diff: Print signed differences
    """
    sign = "+" if is_diff else ""
    print(f"\n  Score: {layout.score:{sign}.4f}")

    for ngram_class in ('mono', 'bi', 'tri', 'quad'):
        table = stats.table(ngram_class)
        if not len(table):
            continue
        print(f"\n  {ngram_class.capitalize()} statistics:")
        values = layout.class_scores(ngram_class)
        for name, value, weight in zip(table.names, values, table.weights):
            if value == 0 and not verbose:
                continue
            print(f"    {name:<28} {value:{sign}8.3f}%   (weight {weight:g})")

    table = stats.skip
    if len(table):
        print(f"\n  Skip statistics:")
        for i, name in enumerate(table.names):
            values = layout.skip_score[:, i]
            if verbose:
                for h, distance in enumerate(SKIP_DISTANCES):
                    print(f"    {name + f' ({distance})':<28} {values[h]:{sign}8.3f}%   "
                          f"(weight {table.weights[i, h]:g})")
            else:
                print(f"    {name:<28} {float(np.mean(values)):{sign}8.3f}%   (mean over distances)")

    meta = stats.meta
    if len(meta):
        print(f"\n  Meta statistics:")
        for name, value, weight in zip(meta.names, layout.meta_score, meta.weights):
            print(f"    {name:<28} {value:{sign}8.3f}    (weight {weight:g})")

def print_layout_diff(diff: Layout, alphabet: Alphabet, stats: StatisticsModel,
                      verbose: bool = False) -> None:
    changed = int(np.sum(diff.grid == MISMATCH))
    visualize_keyboard_layout(diff, alphabet)
    print(f"  Keys that differ: {changed}")
    print_layout_stats(diff, stats, verbose=verbose, is_diff=True)

def print_ranking(ranking: RankingList, n_display: int = 10) -> None:
    """Print the top entries of a ranking list."""
    n_display = min(len(ranking), n_display)
    print(f"\nTop {n_display} layouts:")
    for rank, entry in enumerate(ranking, 1):
        if rank > n_display:
            break
        print(f"  {rank:>3}. {entry.score:12.4f}  {entry.name}")

def print_search_summary(stats: SearchStats) -> None:
    print(f"\nSearch Summary:")
    print(f"  Rounds: {stats.rounds:,}")
    print(f"  Accepted swaps: {stats.accepted:,}")
    print(f"  Rejected swaps: {stats.rejected:,}")
    print(f"  Improvements: {stats.improvements:,}")
    print(f"  Best score: {stats.best_score:.4f}")
    print(f"  Stopped by: {stats.stop_reason}")
    print(f"  Total time: {stats.elapsed_time:.2f}s")
    if stats.elapsed_time > 0:
        print(f"  Rate: {stats.rounds/stats.elapsed_time:.0f} rounds/sec")

#-----------------------------------------------------------------------------
# Saving results
#-----------------------------------------------------------------------------
def _safe_filename(name: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in name).strip("_") or "layout"

def save_ranking_to_csv(ranking: RankingList, config: Config, alphabet: Alphabet,
                        mode: str) -> str:
    """
    Save a ranking to CSV, and every stored layout as a layout file.

    Args:
        ranking: Ranked layouts
        config: Configuration object
        alphabet: Character mapping for layout files
        mode: Name of the run (used in filenames)

    Returns:
        Path to saved CSV file
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config_name = os.path.basename(config._config_path).replace('.yaml', '')
    folder = config.paths.layout_results_folder
    os.makedirs(folder, exist_ok=True)
    output_path = os.path.join(folder, f"{mode}_results_{config_name}_{timestamp}.csv")

    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f, quoting=csv.QUOTE_ALL)
        writer.writerow(['Rank', 'Name', 'Score', 'Layout File'])

        for rank, entry in enumerate(ranking, 1):
            layout_file = ''
            if entry.layout is not None:
                layout_file = os.path.join(
                    folder, f"{mode}_{timestamp}_{rank:03d}_{_safe_filename(entry.name)}.txt")
                save_layout(entry.layout, layout_file, alphabet)
            writer.writerow([rank, entry.name, f"{entry.score:.6f}", layout_file])

    return output_path
