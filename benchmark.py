"""
Multi-seed runs of the PSO solver on one city catalog.

Each seed gets its own RandomSource, so a row of the results table can be
reproduced by re-running that seed alone.
"""

import time
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd
from tqdm import tqdm

from pso_solver import PSOConfig, ParticleSwarmSolver
from tsp_core import City, InvalidInput


def run_seeds(
    cities: List[City],
    config: Optional[PSOConfig] = None,
    seeds: Iterable[int] = range(10),
    iterations: Optional[int] = None,
    progress: bool = True
) -> pd.DataFrame:
    """
    Solve the same catalog once per seed.

    Returns:
        DataFrame with columns seed, best_cost, initial_cost, elapsed, route
    """
    seeds = list(seeds)
    if not seeds:
        raise InvalidInput("At least one seed is required")
    rows = []

    for seed in tqdm(seeds, desc="PSO", disable=not progress):
        solver = ParticleSwarmSolver(cities, config=config, seed=seed)
        start = time.time()
        tour, history = solver.solve(iterations=iterations)
        elapsed = time.time() - start

        rows.append({
            "seed": seed,
            "best_cost": tour.get_total_distance(),
            "initial_cost": history[0],
            "elapsed": elapsed,
            "route": tour.route,
        })

    return pd.DataFrame(rows, columns=["seed", "best_cost", "initial_cost", "elapsed", "route"])


def summarize_runs(results: pd.DataFrame) -> dict:
    """Best / mean / median / std of the final cost, plus mean run time."""
    costs = results["best_cost"].to_numpy(dtype=float)
    best_row = results.loc[results["best_cost"].idxmin()]

    return {
        "runs": int(len(results)),
        "best_cost": float(np.min(costs)),
        "mean_cost": float(np.mean(costs)),
        "median_cost": float(np.median(costs)),
        "std_cost": float(np.std(costs)),
        "avg_time": float(results["elapsed"].mean()),
        "best_seed": int(best_row["seed"]),
        "best_route": list(best_row["route"]),
    }
