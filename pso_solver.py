"""
Discrete Particle Swarm Optimization for the TSP.

Each particle holds a permutation of city indices. Velocity updates are
replaced by index swaps pulling the particle toward its personal best and the
global best, plus random swap mutations. After every iteration the worst
fraction of the swarm is restarted from fresh random tours.
"""

import math
import time
from dataclasses import asdict, dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

from random_source import RandomSource
from tsp_core import (
    City,
    DistanceMatrix,
    InvalidInput,
    Tour,
    check_permutation,
)


# Reference configuration
NUM_CITIES = 20
NUM_PARTICLES = 500
MAX_ITERATIONS = 2000
INITIAL_INERTIA_WEIGHT = 0.9
FINAL_INERTIA_WEIGHT = 0.4
COGNITIVE_COMPONENT = 1.49445
SOCIAL_COMPONENT = 1.49445
MUTATION_RATE = 0.1
PRUNE_PERCENTAGE = 10


@dataclass(frozen=True)
class PSOConfig:
    """
    Swarm hyperparameters.

    cognitive_component and social_component are compared literally against
    a draw from [0, 1): any value >= 1.0 makes that swap unconditional.
    The inertia weights are accepted and validated but the swap update does
    not use them.
    """
    num_cities: int = NUM_CITIES
    num_particles: int = NUM_PARTICLES
    max_iterations: int = MAX_ITERATIONS
    initial_inertia_weight: float = INITIAL_INERTIA_WEIGHT
    final_inertia_weight: float = FINAL_INERTIA_WEIGHT
    cognitive_component: float = COGNITIVE_COMPONENT
    social_component: float = SOCIAL_COMPONENT
    mutation_rate: float = MUTATION_RATE
    prune_percentage: int = PRUNE_PERCENTAGE
    check_invariants: bool = False

    def validate(self) -> 'PSOConfig':
        _require_int("num_cities", self.num_cities, low=2)
        _require_int("num_particles", self.num_particles, low=1)
        _require_int("max_iterations", self.max_iterations, low=0)
        _require_int("prune_percentage", self.prune_percentage, low=0, high=100)

        _require_float("initial_inertia_weight", self.initial_inertia_weight)
        _require_float("final_inertia_weight", self.final_inertia_weight)
        _require_float("cognitive_component", self.cognitive_component, low=0.0)
        _require_float("social_component", self.social_component, low=0.0)
        _require_float("mutation_rate", self.mutation_rate, low=0.0, high=1.0)
        return self

    @property
    def prune_count(self) -> int:
        return self.num_particles * self.prune_percentage // 100

    def replace(self, **changes) -> 'PSOConfig':
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)


def _require_int(name, value, low=None, high=None):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer, got {value!r}")
    if low is not None and value < low:
        raise InvalidInput(f"{name} must be >= {low}, got {value}")
    if high is not None and value > high:
        raise InvalidInput(f"{name} must be <= {high}, got {value}")


def _require_float(name, value, low=None, high=None):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInput(f"{name} must be finite, got {value}")
    if low is not None and value < low:
        raise InvalidInput(f"{name} must be >= {low}, got {value}")
    if high is not None and value > high:
        raise InvalidInput(f"{name} must be <= {high}, got {value}")


def swap(seq: List[int], i: int, j: int):
    seq[i], seq[j] = seq[j], seq[i]


class Particle:
    """One candidate tour plus the best tour it has ever held."""

    __slots__ = ("position", "cost", "best_position", "best_cost")

    def __init__(self, position: List[int], cost: float):
        self.position = position
        self.cost = cost
        self.best_position = list(position)
        self.best_cost = cost

    @classmethod
    def random(cls, cities: Sequence[City], rng: RandomSource, evaluator) -> 'Particle':
        position = rng.permutation(len(cities))
        return cls(position, evaluator.compute(position, cities))

    def restart(self, cities: Sequence[City], rng: RandomSource, evaluator):
        """Replace the tour with a fresh random one and forget the personal best."""
        self.position = rng.permutation(len(cities))
        self.cost = evaluator.compute(self.position, cities)
        self.best_position = list(self.position)
        self.best_cost = self.cost

    def __repr__(self):
        return f"Particle(cost={self.cost:.2f}, best_cost={self.best_cost:.2f})"


class GlobalBest:
    """Best tour found by any particle; its cost never increases."""

    __slots__ = ("position", "cost")

    def __init__(self, position: Sequence[int], cost: float):
        self.position = list(position)
        self.cost = cost

    @classmethod
    def from_particle(cls, particle: Particle) -> 'GlobalBest':
        return cls(particle.best_position, particle.best_cost)

    def offer(self, position: Sequence[int], cost: float) -> bool:
        """Adopt a copy of position on strict improvement."""
        if cost < self.cost:
            self.cost = cost
            self.position = list(position)
            return True
        return False

    def __repr__(self):
        return f"GlobalBest(cost={self.cost:.2f})"


class Swarm:
    """Fixed-size ordered collection of particles with the update and prune operators."""

    def __init__(self, cities: Sequence[City], config: PSOConfig, rng: RandomSource, evaluator):
        self.cities = cities
        self.n_cities = len(cities)
        self.config = config
        self.rng = rng
        self.evaluator = evaluator
        self.particles: List[Particle] = []

    def initialize(self):
        """Fill the swarm with uniformly random tours."""
        self.particles = [
            Particle.random(self.cities, self.rng, self.evaluator)
            for _ in range(self.config.num_particles)
        ]

    # ---------------------------------------
    # Swap operators
    # ---------------------------------------

    def pull_toward(self, position: List[int], personal_best: List[int], global_best: List[int]):
        """
        Cognitive and social swap pass.

        The entries of the best tours are city ids, and they are used directly
        as indices into position.
        """
        rng = self.rng
        cognitive = self.config.cognitive_component
        social = self.config.social_component

        for i in range(self.n_cities):
            if rng.probability() < cognitive:
                swap(position, i, personal_best[i])
            if rng.probability() < social:
                swap(position, i, global_best[i])

    def mutate(self, position: List[int]):
        """Two independent random-swap trials."""
        rng = self.rng
        n = self.n_cities
        for _ in range(2):
            if rng.probability() < self.config.mutation_rate:
                a = rng.uniform_int(0, n)
                b = rng.uniform_int(0, n)
                swap(position, a, b)

    # ---------------------------------------
    # Per-iteration operators
    # ---------------------------------------

    def update(self, global_best: GlobalBest):
        """
        Move every particle, in swarm order, then prune.

        A global best found by one particle is already used by the
        particles after it in the same pass.
        """
        for particle in self.particles:
            position = particle.position

            self.rng.shuffle(position)
            self.pull_toward(position, particle.best_position, global_best.position)
            self.mutate(position)

            particle.cost = self.evaluator.compute(position, self.cities)

            if particle.cost < particle.best_cost:
                particle.best_cost = particle.cost
                particle.best_position = list(position)

            global_best.offer(position, particle.cost)

        self.prune()

    def prune(self) -> List[Particle]:
        """Restart the worst prune_count particles; returns the restarted ones."""
        self.particles.sort(key=lambda p: p.cost)

        prune_count = self.config.prune_count
        if prune_count == 0:
            return []

        pruned = self.particles[-prune_count:]
        for particle in pruned:
            particle.restart(self.cities, self.rng, self.evaluator)
        return pruned

    def check_invariants(self):
        """Raise InternalInvariantViolation if any particle holds a non-permutation."""
        for k, particle in enumerate(self.particles):
            check_permutation(particle.position, self.n_cities, f"particle {k} position")
            check_permutation(particle.best_position, self.n_cities, f"particle {k} best position")

    def get_costs(self) -> List[float]:
        return [p.cost for p in self.particles]

    def __len__(self):
        return len(self.particles)

    def __iter__(self):
        return iter(self.particles)


class ParticleSwarmSolver:
    """
    PSO solver for the TSP.

    Runs a fixed iteration budget with no early stopping and returns the
    global best tour together with its cost history.
    """

    def __init__(
        self,
        cities: List[City],
        config: Optional[PSOConfig] = None,
        rng: Optional[RandomSource] = None,
        seed: Optional[int] = None,
        evaluator=None,
        progress_every: int = 100
    ):
        if len(cities) < 2:
            raise InvalidInput(
                f"At least 2 cities are required, got {len(cities)}"
            )
        if rng is not None and seed is not None:
            raise InvalidInput("Pass either rng or seed, not both")
        if progress_every < 1:
            raise InvalidInput(f"progress_every must be >= 1, got {progress_every}")

        self.cities = cities
        self.config = (config or PSOConfig()).validate()
        self.rng = rng or RandomSource(seed)
        self.evaluator = evaluator or DistanceMatrix(cities)
        self.progress_every = progress_every

        # PSO state
        self.swarm: Optional[Swarm] = None
        self.global_best: Optional[GlobalBest] = None
        self.iteration = 0
        self.best_cost_history: List[float] = []

    # ---------------------------------------
    # Initialization
    # ---------------------------------------

    def initialize(self):
        self.swarm = Swarm(self.cities, self.config, self.rng, self.evaluator)
        self.swarm.initialize()

        # Seeded from the first particle, not the swarm minimum
        self.global_best = GlobalBest.from_particle(self.swarm.particles[0])
        self.iteration = 0
        self.best_cost_history = [self.global_best.cost]

        if self.config.check_invariants:
            self.swarm.check_invariants()

    # ---------------------------------------
    # Single iteration
    # ---------------------------------------

    def step(self):
        if self.swarm is None:
            self.initialize()

        self.swarm.update(self.global_best)
        self.iteration += 1
        self.best_cost_history.append(self.global_best.cost)

        if self.config.check_invariants:
            self.swarm.check_invariants()
            check_permutation(self.global_best.position, len(self.cities), "global best position")

    # ---------------------------------------
    # Main loop
    # ---------------------------------------

    def solve(
        self,
        iterations: Optional[int] = None,
        verbose: bool = False,
        callback: Optional[Callable[['ParticleSwarmSolver', int], None]] = None
    ) -> Tuple[Tour, List[float]]:
        """
        Run the swarm for a fixed number of iterations.

        Args:
            iterations: Override for config.max_iterations
            verbose: Print progress every progress_every iterations
            callback: Called as callback(solver, iteration) after each iteration

        Returns:
            best_tour, best_cost_history
        """
        if iterations is None:
            iterations = self.config.max_iterations
        elif isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 0:
            raise InvalidInput(f"iterations must be a non-negative integer, got {iterations!r}")

        if self.swarm is None:
            self.initialize()

        start = time.time()

        for it in range(iterations):
            self.step()

            if callback:
                callback(self, it)

            if verbose and (it + 1) % self.progress_every == 0:
                print(f"Iter {it+1} | Best = {self.global_best.cost:.2f}")

        if verbose:
            print(f"Finished {iterations} iterations in {time.time() - start:.2f}s | "
                  f"Best = {self.global_best.cost:.2f}")

        return self.get_best_tour(), self.best_cost_history

    def get_best_tour(self) -> Optional[Tour]:
        if self.global_best is None:
            return None
        return Tour(self.global_best.position, self.cities)
