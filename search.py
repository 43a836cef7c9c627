# search.py
"""
Search algorithms for layout optimization.

Consolidates all search logic including:
- Simulated-annealing swap search over several candidate layouts at once
- Temperature-gated acceptance and exact rollback of rejected swaps
- Random layout generation

Each round of the swap search goes through the same phases:

    propose   each worker draws a batch of random key swaps
    evaluate  workers apply their batch and rescore, in parallel threads
    decide    once every worker is done, accept or reject each candidate
    apply / roll back
              accepted grids stay; rejected batches are undone in reverse
              order and the cached score vectors are restored

Workers own private layout copies, so evaluation needs no locking. Only
the main thread reads the temperature and writes to the ranking list.
Stop conditions are checked between rounds, never in the middle of one.
"""

import math
import time
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from tqdm import tqdm

from config import SearchConfig
from cooling import CoolingSchedule, create_schedule
from layout import Layout, Swap
from ngram_index import KeyboardGeometry
from ranking import RankingList
from scoring import LayoutScorer

#-----------------------------------------------------------------------------
# Swap proposal and acceptance
#-----------------------------------------------------------------------------
def gen_swaps(rng: np.random.Generator, reps: int, geometry: KeyboardGeometry) -> List[Swap]:
    """Draw `reps` swaps, each between two distinct uniformly chosen keys."""
    swaps = []
    for _ in range(reps):
        key0, key1 = rng.choice(geometry.key_count, size=2, replace=False)
        swaps.append((geometry.key_coordinate(int(key0)), geometry.key_coordinate(int(key1))))
    return swaps

def accept_probability(candidate_score: float, current_score: float, temperature: float) -> float:
    """Probability of moving to a candidate; improvements are always taken."""
    if candidate_score > current_score:
        return 1.0
    if temperature <= 0:
        return 0.0
    return math.exp((candidate_score - current_score) / temperature)

def decide_swapbacks(current_scores: Sequence[float], candidate_scores: Sequence[float],
                     temperature: float, rng: np.random.Generator) -> np.ndarray:
    """
    Accept or reject every candidate.

    Returns:
        Boolean array, True where the candidate's swaps must be undone
    """
    swap_back = np.zeros(len(candidate_scores), dtype=bool)
    for i, (current, candidate) in enumerate(zip(current_scores, candidate_scores)):
        probability = accept_probability(candidate, current, temperature)
        if probability < 1.0 and rng.random() >= probability:
            swap_back[i] = True
    return swap_back

#-----------------------------------------------------------------------------
# Worker state
#-----------------------------------------------------------------------------
class CandidateWorker:
    """One independently tracked candidate layout and its pending swaps."""

    def __init__(self, worker_id: int, layout: Layout, scorer: LayoutScorer,
                 rng: np.random.Generator):
        self.worker_id = worker_id
        self.layout = layout
        self.scorer = scorer
        self.rng = rng
        self.current_score = scorer.score(layout)
        self.best = layout.copy()
        self._swaps: List[Swap] = []
        self._snapshot = None

    @property
    def best_score(self) -> float:
        return self.best.score

    def propose(self, reps: int) -> List[Swap]:
        return gen_swaps(self.rng, reps, self.layout.geometry)

    def evaluate(self, swaps: List[Swap]) -> float:
        """Apply a swap batch and rescore; the previous state stays cached."""
        self._snapshot = self.layout.snapshot_scores()
        self._swaps = swaps
        self.layout.apply_swaps(swaps)
        return self.scorer.score(self.layout)

    def commit(self) -> bool:
        """
        Keep the evaluated grid.

        Returns:
            True if the layout beat this worker's best so far
        """
        self.current_score = self.layout.score
        self._swaps, self._snapshot = [], None
        if self.current_score > self.best.score:
            self.best = self.layout.copy()
            return True
        return False

    def roll_back(self) -> None:
        self.layout.undo_swaps(self._swaps)
        self.layout.restore_scores(self._snapshot)
        self._swaps, self._snapshot = [], None

#-----------------------------------------------------------------------------
# Swap optimizer
#-----------------------------------------------------------------------------
@dataclass
class SearchStats:
    """Statistics tracking for search process."""
    rounds: int = 0
    accepted: int = 0
    rejected: int = 0
    improvements: int = 0
    best_score: float = float('-inf')
    elapsed_time: float = 0.0
    stop_reason: str = ""

class SwapOptimizer:
    """
    Simulated-annealing search over key swaps.

    Args:
        scorer: shared, read-only scorer
        params: search parameters (threads, swaps per round, limits, seed)
        schedule: cooling schedule; built from params when omitted
    """

    def __init__(self, scorer: LayoutScorer, params: SearchConfig,
                 schedule: Optional[CoolingSchedule] = None):
        self.scorer = scorer
        self.params = params
        self.schedule = schedule or create_schedule(
            params.cooling, params.initial_temperature, params.cooling_rate)
        self.rng = np.random.default_rng(params.seed)

    def _stop_reason(self, round_index: int, start_time: float, idle_rounds: int) -> str:
        if round_index >= self.params.max_rounds:
            return "round limit"
        if time.time() - start_time >= self.params.time_limit:
            return "time limit"
        if idle_rounds >= self.params.patience:
            return "no accepted swaps"
        return ""

    def _create_workers(self, start: Layout) -> List[CandidateWorker]:
        seeds = np.random.SeedSequence(int(self.rng.integers(2**32))).spawn(self.params.threads)
        return [
            CandidateWorker(i, start.copy(name=f"{start.name} #{i + 1}"), self.scorer,
                            np.random.default_rng(seed))
            for i, seed in enumerate(seeds)
        ]

    def improve(self, start: Layout, ranking: Optional[RankingList] = None,
                show_progress: bool = False) -> Tuple[Layout, SearchStats]:
        """
        Improve a starting layout by simulated-annealing swaps.

        Args:
            start: layout to start from (left untouched)
            ranking: receives each worker's best layout when the search ends
            show_progress: draw a progress bar

        Returns:
            (best_layout, stats)
        """
        stats = SearchStats()
        workers = self._create_workers(start)
        reps = self.params.swaps_per_round

        start_time = time.time()
        idle_rounds = 0
        total = None if math.isinf(self.params.max_rounds) else int(self.params.max_rounds)
        progress = tqdm(total=total, desc="Improving", unit="round", disable=not show_progress)

        with progress, ThreadPoolExecutor(max_workers=self.params.threads) as executor:
            while True:
                stats.stop_reason = self._stop_reason(stats.rounds, start_time, idle_rounds)
                if stats.stop_reason:
                    break

                temperature = self.schedule.temperature(stats.rounds)

                batches = [worker.propose(reps) for worker in workers]
                # map() returns in order once every worker is done: the phase barrier
                candidate_scores = list(executor.map(
                    lambda job: job[0].evaluate(job[1]), zip(workers, batches)))

                swap_back = decide_swapbacks(
                    [worker.current_score for worker in workers],
                    candidate_scores, temperature, self.rng)

                accepted_this_round = 0
                for worker, back in zip(workers, swap_back):
                    if back:
                        worker.roll_back()
                        stats.rejected += 1
                    else:
                        accepted_this_round += 1
                        stats.accepted += 1
                        if worker.commit():
                            stats.improvements += 1

                idle_rounds = 0 if accepted_this_round else idle_rounds + 1
                stats.rounds += 1
                best = max(worker.best_score for worker in workers)
                progress.update(1)
                progress.set_postfix(best=f"{best:.4f}", T=f"{temperature:.4g}")

        stats.elapsed_time = time.time() - start_time
        best_worker = max(workers, key=lambda worker: worker.best_score)
        stats.best_score = best_worker.best_score

        if ranking is not None:
            for worker in workers:
                ranking.insert(worker.best)

        return best_worker.best.copy(name=f"{start.name} improved"), stats

#-----------------------------------------------------------------------------
# Random generation
#-----------------------------------------------------------------------------
def generate_layouts(scorer: LayoutScorer, start: Layout, count: int,
                     ranking: RankingList, seed: Optional[int] = None,
                     show_progress: bool = False) -> Layout:
    """
    Score `count` random shuffles of a layout and rank them.

    Returns:
        The best generated layout
    """
    rng = np.random.default_rng(seed)
    best = None
    for i in tqdm(range(count), desc="Generating", unit="layout", disable=not show_progress):
        candidate = start.skeleton_copy(name=f"{start.name} shuffle {i + 1}")
        candidate.shuffle(rng)
        scorer.score(candidate)
        if best is None or candidate.score > best.score:
            best = candidate
        ranking.insert_entry(candidate.name, candidate.score, candidate)
    return best
