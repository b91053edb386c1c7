import pytest

from data_generator import cities_from_coordinates, generate_random_cities
from pso_solver import (
    GlobalBest,
    PSOConfig,
    Particle,
    ParticleSwarmSolver,
    Swarm,
)
from random_source import RandomSource
from tsp_core import (
    CostEvaluator,
    InternalInvariantViolation,
    InvalidInput,
    compute_cost,
    is_permutation,
)


def small_config(**changes):
    base = PSOConfig(num_cities=8, num_particles=30, max_iterations=40)
    return base.replace(**changes)


# ---------------------------------------
# Configuration
# ---------------------------------------

def test_defaults_match_reference_run():
    config = PSOConfig()
    assert config.num_cities == 20
    assert config.num_particles == 500
    assert config.max_iterations == 2000
    assert config.initial_inertia_weight == 0.9
    assert config.final_inertia_weight == 0.4
    assert config.cognitive_component == 1.49445
    assert config.social_component == 1.49445
    assert config.mutation_rate == 0.1
    assert config.prune_percentage == 10
    assert config.check_invariants is False
    assert config.validate() is config


@pytest.mark.parametrize("changes", [
    {"num_cities": 1},
    {"num_particles": 0},
    {"max_iterations": -1},
    {"mutation_rate": -0.01},
    {"mutation_rate": 1.5},
    {"prune_percentage": -1},
    {"prune_percentage": 101},
    {"prune_percentage": 10.5},
    {"cognitive_component": -1.0},
    {"social_component": float("nan")},
    {"initial_inertia_weight": float("inf")},
    {"num_particles": True},
])
def test_invalid_config_rejected(changes):
    with pytest.raises(InvalidInput):
        PSOConfig().replace(**changes).validate()


@pytest.mark.parametrize("particles, percentage, expected", [
    (500, 10, 50),
    (25, 10, 2),
    (9, 10, 0),
    (7, 100, 7),
    (7, 0, 0),
])
def test_prune_count_rounds_down(particles, percentage, expected):
    config = PSOConfig(num_particles=particles, prune_percentage=percentage)
    assert config.prune_count == expected


def test_config_is_immutable():
    config = PSOConfig()
    with pytest.raises(Exception):
        config.num_particles = 3
    assert config.replace(num_particles=3).num_particles == 3
    assert config.to_dict()["num_particles"] == 500


# ---------------------------------------
# Particle and global best
# ---------------------------------------

def test_random_particle_starts_as_its_own_best(random_cities):
    particle = Particle.random(random_cities, RandomSource(1), CostEvaluator())
    assert is_permutation(particle.position, 20)
    assert particle.cost == compute_cost(particle.position, random_cities)
    assert particle.best_position == particle.position
    assert particle.best_position is not particle.position
    assert particle.best_cost == particle.cost


def test_restart_discards_history(random_cities):
    particle = Particle.random(random_cities, RandomSource(1), CostEvaluator())
    particle.best_cost = 0.0
    old_position = particle.position

    particle.restart(random_cities, RandomSource(2), CostEvaluator())

    assert particle.position is not old_position
    assert particle.best_cost == particle.cost
    assert particle.best_position == particle.position


def test_global_best_updates_only_on_strict_improvement():
    best = GlobalBest([0, 1, 2], 10.0)
    kept = best.position

    assert best.offer([2, 1, 0], 10.0) is False
    assert best.position is kept

    candidate = [1, 0, 2]
    assert best.offer(candidate, 9.5) is True
    assert best.cost == 9.5

    candidate[0], candidate[1] = candidate[1], candidate[0]
    assert best.position == [1, 0, 2]


# ---------------------------------------
# Swap operators
# ---------------------------------------

def make_swarm(cities, rng, **changes):
    config = PSOConfig(num_cities=len(cities), num_particles=4, **changes)
    return Swarm(cities, config, rng, CostEvaluator())


def test_pull_toward_uses_city_ids_as_indices(scripted_random):
    cities = cities_from_coordinates([(0, 0), (1, 0), (2, 0)])
    # Cognitive draws always pass, social draws never do
    rng = scripted_random(probabilities=[0.0, 0.9] * 3)
    swarm = make_swarm(cities, rng, cognitive_component=0.5, social_component=0.5)

    position = [0, 1, 2]
    swarm.pull_toward(position, personal_best=[2, 0, 1], global_best=[1, 2, 0])

    assert position == [1, 0, 2]


def test_pull_toward_social_swaps(scripted_random):
    cities = cities_from_coordinates([(0, 0), (1, 0), (2, 0)])
    rng = scripted_random(probabilities=[0.9, 0.0] * 3)
    swarm = make_swarm(cities, rng, cognitive_component=0.5, social_component=0.5)

    position = [0, 1, 2]
    swarm.pull_toward(position, personal_best=[2, 0, 1], global_best=[1, 2, 0])

    # i=0 -> swap(0, 1); i=1 -> swap(1, 2); i=2 -> swap(2, 0)
    assert position == [0, 2, 1]


def test_threshold_at_or_above_one_always_swaps(scripted_random):
    cities = cities_from_coordinates([(0, 0), (1, 0), (2, 0)])
    rng = scripted_random(probabilities=[0.999999, 0.999999] * 3)
    swarm = make_swarm(cities, rng, cognitive_component=1.49445, social_component=0.0)

    position = [0, 1, 2]
    swarm.pull_toward(position, personal_best=[2, 0, 1], global_best=[1, 2, 0])

    assert position == [1, 0, 2]


def test_mutation_runs_two_independent_swaps(scripted_random):
    cities = cities_from_coordinates([(0, 0), (1, 0), (2, 0), (3, 0)])
    rng = scripted_random(probabilities=[0.5, 0.5], integers=[0, 3, 1, 2])
    swarm = make_swarm(cities, rng, mutation_rate=1.0)

    position = [0, 1, 2, 3]
    swarm.mutate(position)

    assert position == [3, 2, 1, 0]


def test_mutation_rate_zero_never_swaps(scripted_random):
    cities = cities_from_coordinates([(0, 0), (1, 0), (2, 0), (3, 0)])
    rng = scripted_random(probabilities=[0.0, 0.0])
    swarm = make_swarm(cities, rng, mutation_rate=0.0)

    position = [0, 1, 2, 3]
    swarm.mutate(position)

    assert position == [0, 1, 2, 3]


def test_second_mutation_trial_is_independent(scripted_random):
    cities = cities_from_coordinates([(0, 0), (1, 0), (2, 0), (3, 0)])
    rng = scripted_random(probabilities=[0.9, 0.05], integers=[1, 2])
    swarm = make_swarm(cities, rng, mutation_rate=0.1)

    position = [0, 1, 2, 3]
    swarm.mutate(position)

    assert position == [0, 2, 1, 3]


# ---------------------------------------
# Prune and restart
# ---------------------------------------

def test_prune_replaces_exactly_the_worst_particles(random_cities):
    config = PSOConfig(num_particles=25, prune_percentage=10)
    swarm = Swarm(random_cities, config, RandomSource(8), CostEvaluator())
    swarm.initialize()

    before = {id(p): (p.position, list(p.position), p.cost) for p in swarm.particles}
    ranked = sorted(swarm.particles, key=lambda p: p.cost)
    expected_pruned = ranked[-2:]

    pruned = swarm.prune()

    assert len(pruned) == 2
    assert {id(p) for p in pruned} == {id(p) for p in expected_pruned}
    assert swarm.particles[-2:] == pruned

    replaced = 0
    for particle in swarm.particles:
        old_list, old_contents, old_cost = before[id(particle)]
        if particle.position is not old_list:
            replaced += 1
            assert particle.best_position == particle.position
            assert particle.best_cost == particle.cost
        else:
            assert particle.position == old_contents
            assert particle.cost == old_cost
    assert replaced == 2


def test_prune_sort_is_stable(square_cities):
    config = PSOConfig(num_particles=6, prune_percentage=0)
    swarm = Swarm(square_cities, config, RandomSource(1), CostEvaluator())
    swarm.initialize()
    for k, particle in enumerate(swarm.particles):
        particle.cost = 1.0 if k % 2 else 2.0
    order = [id(p) for p in swarm.particles]

    swarm.prune()

    assert [id(p) for p in swarm.particles] == [order[1], order[3], order[5], order[0], order[2], order[4]]


def test_prune_zero_percent_only_sorts(random_cities):
    config = PSOConfig(num_particles=10, prune_percentage=0)
    swarm = Swarm(random_cities, config, RandomSource(3), CostEvaluator())
    swarm.initialize()
    positions = {id(p): p.position for p in swarm.particles}

    assert swarm.prune() == []
    assert swarm.get_costs() == sorted(swarm.get_costs())
    assert all(p.position is positions[id(p)] for p in swarm.particles)


def test_swarm_size_is_constant(random_cities):
    solver = ParticleSwarmSolver(random_cities, config=small_config(num_particles=17), seed=4)
    solver.solve(iterations=15)
    assert len(solver.swarm) == 17


# ---------------------------------------
# Solver loop
# ---------------------------------------

def test_fewer_than_two_cities_rejected():
    with pytest.raises(InvalidInput):
        ParticleSwarmSolver(cities_from_coordinates([(1, 1)]))
    with pytest.raises(InvalidInput):
        ParticleSwarmSolver([])


def test_invalid_config_rejected_before_work(random_cities):
    with pytest.raises(InvalidInput):
        ParticleSwarmSolver(random_cities, config=PSOConfig(mutation_rate=2.0))


def test_rng_and_seed_are_exclusive(random_cities):
    with pytest.raises(InvalidInput):
        ParticleSwarmSolver(random_cities, rng=RandomSource(1), seed=1)


@pytest.mark.parametrize("iterations", [-1, 2.5, True])
def test_invalid_iteration_override_rejected(random_cities, iterations):
    solver = ParticleSwarmSolver(random_cities, config=small_config(), seed=1)
    with pytest.raises(InvalidInput):
        solver.solve(iterations=iterations)


def test_global_best_starts_from_first_particle(random_cities):
    solver = ParticleSwarmSolver(random_cities, config=small_config(), seed=12)
    solver.initialize()

    first = solver.swarm.particles[0]
    assert solver.global_best.cost == first.best_cost
    assert solver.global_best.position == first.best_position
    assert solver.global_best.position is not first.best_position


def test_zero_iterations_returns_initial_best(random_cities):
    solver = ParticleSwarmSolver(random_cities, config=small_config(max_iterations=0), seed=3)
    tour, history = solver.solve()
    assert history == [solver.swarm.particles[0].best_cost]
    assert tour.get_total_distance() == history[0]


def test_runs_exactly_the_iteration_budget(random_cities):
    calls = []
    solver = ParticleSwarmSolver(random_cities, config=small_config(max_iterations=25), seed=3)
    _, history = solver.solve(callback=lambda s, it: calls.append(it))

    assert calls == list(range(25))
    assert len(history) == 26
    assert solver.iteration == 25


def test_returned_tour_matches_global_best(random_cities):
    solver = ParticleSwarmSolver(random_cities, config=small_config(), seed=21)
    tour, history = solver.solve()

    assert is_permutation(tour.route, len(random_cities))
    assert tour.get_total_distance() == solver.global_best.cost == history[-1]


def test_costs_are_consistent_after_each_iteration(random_cities):
    solver = ParticleSwarmSolver(random_cities, config=small_config(), seed=9)

    def check(s, it):
        assert s.global_best.cost == compute_cost(s.global_best.position, s.cities)
        for particle in s.swarm:
            assert particle.cost == compute_cost(particle.position, s.cities)
            assert particle.best_cost == compute_cost(particle.best_position, s.cities)
            assert particle.best_cost <= particle.cost

    solver.solve(callback=check)


def test_verbose_prints_progress(random_cities, capsys):
    solver = ParticleSwarmSolver(random_cities, config=small_config(), seed=2, progress_every=10)
    solver.solve(iterations=20, verbose=True)
    out = capsys.readouterr().out
    assert "Iter 10 | Best =" in out
    assert "Iter 20 | Best =" in out


def test_progress_every_must_be_positive(random_cities):
    with pytest.raises(InvalidInput):
        ParticleSwarmSolver(random_cities, progress_every=0)


def test_invariant_check_aborts_on_corrupted_particle(random_cities):
    solver = ParticleSwarmSolver(random_cities, config=small_config(num_cities=20, check_invariants=True), seed=6)
    solver.initialize()
    solver.swarm.particles[0].position = [0] * 20

    with pytest.raises(InternalInvariantViolation):
        solver.step()


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_permutation_invariant_holds_throughout(random_cities, seed):
    config = PSOConfig(num_particles=500, max_iterations=200)
    solver = ParticleSwarmSolver(random_cities, config=config, seed=seed)

    def check(s, it):
        n = len(s.cities)
        for particle in s.swarm:
            assert is_permutation(particle.position, n)
            assert is_permutation(particle.best_position, n)
        assert is_permutation(s.global_best.position, n)

    solver.solve(callback=check)


@pytest.mark.parametrize("seed", range(5))
def test_global_best_never_increases(seed):
    cities = generate_random_cities(12, rng=RandomSource(seed + 100))
    solver = ParticleSwarmSolver(cities, config=small_config(num_particles=40, max_iterations=100), seed=seed)
    _, history = solver.solve()

    assert all(later <= earlier for earlier, later in zip(history, history[1:]))


def test_fixed_seed_is_deterministic(random_cities):
    def trace(seed):
        snapshots = []
        solver = ParticleSwarmSolver(random_cities, config=small_config(), seed=seed)
        _, history = solver.solve(
            callback=lambda s, it: snapshots.append([list(p.position) for p in s.swarm])
        )
        return snapshots, history, list(solver.global_best.position), solver.global_best.cost

    assert trace(77) == trace(77)
    assert trace(77) != trace(78)


def test_thresholds_above_one_behave_like_one(random_cities):
    def run(component):
        config = small_config(cognitive_component=component, social_component=component)
        solver = ParticleSwarmSolver(random_cities, config=config, seed=31)
        return solver.solve()[1]

    assert run(1.0) == run(1.49445) == run(7.0)


def test_inertia_weights_do_not_change_the_search(random_cities):
    def run(initial, final):
        config = small_config(initial_inertia_weight=initial, final_inertia_weight=final)
        return ParticleSwarmSolver(random_cities, config=config, seed=5).solve()[1]

    assert run(0.9, 0.4) == run(0.1, 0.0)


def test_square_is_solved_to_perimeter(square_cities):
    config = PSOConfig(num_cities=4, num_particles=50, max_iterations=200)
    tour, _ = ParticleSwarmSolver(square_cities, config=config, seed=0).solve()
    assert tour.get_total_distance() == pytest.approx(40.0)
