"""
PSO-TSP Solver - Main Application
Solve a random (or loaded) TSP instance with the discrete particle swarm.
"""

import argparse
import sys
from typing import List, Optional

from benchmark import run_seeds, summarize_runs
from data_generator import generate_circle_cities, generate_random_cities, load_tsp_file
from pso_solver import PSOConfig, ParticleSwarmSolver
from random_source import RandomSource
from tsp_core import City, InvalidInput, Tour


def print_result(tour: Tour, out=None):
    """Print the best route and its cost."""
    out = out or sys.stdout
    print(f"Best Route: {tour.route}", file=out)
    print(f"Best Cost: {tour.get_total_distance()}", file=out)


def build_config(args) -> PSOConfig:
    overrides = {
        "num_cities": args.cities,
        "num_particles": args.particles,
        "max_iterations": args.iterations,
        "mutation_rate": args.mutation_rate,
        "prune_percentage": args.prune_percentage,
    }
    config = PSOConfig(**{k: v for k, v in overrides.items() if v is not None})
    if args.check_invariants:
        config = config.replace(check_invariants=True)
    return config.validate()


def build_cities(args, config: PSOConfig, rng: RandomSource) -> List[City]:
    if args.tsp_file:
        if args.cities is not None:
            print(f"Warning: --cities {args.cities} is ignored; the city count comes from {args.tsp_file}",
                  file=sys.stderr)
        return load_tsp_file(args.tsp_file)
    if args.pattern == 'circle':
        return generate_circle_cities(config.num_cities, radius=50)
    return generate_random_cities(config.num_cities, width=100, height=100, rng=rng)


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Solve the Traveling Salesman Problem with a discrete particle swarm",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reference run: 20 random cities, 500 particles, 2000 iterations
  python main.py

  # Smaller, reproducible run with progress output
  python main.py --cities 12 --particles 100 --iterations 300 --seed 7 --verbose

  # Ten seeds on a TSPLIB instance
  python main.py --tsp-file ulysses22.tsp --runs 10
        """
    )

    parser.add_argument('--cities', type=int, help='Number of cities to generate (default: 20)')
    parser.add_argument('--particles', type=int, help='Swarm size (default: 500)')
    parser.add_argument('--iterations', type=int, help='Iteration budget (default: 2000)')
    parser.add_argument('--mutation-rate', type=float, help='Per-trial swap mutation probability (default: 0.1)')
    parser.add_argument('--prune-percentage', type=int, help='Share of the swarm restarted each iteration (default: 10)')
    parser.add_argument('--seed', type=int, help='Seed for a reproducible run')
    parser.add_argument('--tsp-file', type=str, help='Load cities from a TSPLIB file instead of generating them')
    parser.add_argument(
        '--pattern',
        type=str,
        choices=['random', 'circle'],
        default='random',
        help='City placement pattern (default: random)'
    )
    parser.add_argument('--runs', type=int, default=1, help='Solve once per seed and print a summary')
    parser.add_argument('--check-invariants', action='store_true', help='Verify every tour is a permutation after each iteration')
    parser.add_argument('--verbose', action='store_true', help='Print progress during the run')
    parser.add_argument('--plot', action='store_true', help='Show the best tour and convergence plots')
    parser.add_argument('--save-plot', type=str, help='Save the best tour plot to this path')

    return parser.parse_args(argv)


def run(args) -> int:
    if args.runs < 1:
        raise InvalidInput(f"--runs must be >= 1, got {args.runs}")

    config = build_config(args)
    rng = RandomSource(args.seed)
    cities = build_cities(args, config, rng)
    history = None

    if args.runs > 1:
        seeds = [rng.seed + k for k in range(args.runs)]
        if args.verbose:
            print(f"Seeds {seeds[0]}..{seeds[-1]} | {len(cities)} cities | {config.num_particles} particles | "
                  f"{config.max_iterations} iterations")

        results = run_seeds(cities, config=config, seeds=seeds)
        summary = summarize_runs(results)
        print(f"Runs: {summary['runs']} | Best: {summary['best_cost']:.2f} | "
              f"Mean: {summary['mean_cost']:.2f} | Median: {summary['median_cost']:.2f} | "
              f"Std: {summary['std_cost']:.2f} | Avg time: {summary['avg_time']:.2f}s")
        if args.verbose:
            print(f"Best run: seed {summary['best_seed']}")
        tour = Tour(summary['best_route'], cities)
    else:
        if args.verbose:
            print(f"Seed {rng.seed} | {len(cities)} cities | {config.num_particles} particles | "
                  f"{config.max_iterations} iterations")

        solver = ParticleSwarmSolver(cities, config=config, rng=rng)
        tour, history = solver.solve(verbose=args.verbose)

    print_result(tour)

    if args.plot or args.save_plot:
        from visualization import TSPVisualizer

        visualizer = TSPVisualizer()
        visualizer.plot_tour(tour, title="PSO Best Tour", save_path=args.save_plot, show=args.plot)
        # Multi-seed runs keep no per-iteration history
        if args.plot and history is not None:
            visualizer.plot_convergence(history)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the PSO-TSP solver application."""
    args = parse_args(argv)
    try:
        return run(args)
    except (InvalidInput, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
