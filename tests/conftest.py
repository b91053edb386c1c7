import matplotlib

matplotlib.use("Agg")

import pytest

from data_generator import cities_from_coordinates, generate_random_cities
from random_source import RandomSource


@pytest.fixture
def two_cities():
    return cities_from_coordinates([(0, 0), (3, 4)])


@pytest.fixture
def square_cities():
    return cities_from_coordinates([(0, 0), (10, 0), (10, 10), (0, 10)])


@pytest.fixture
def random_cities():
    return generate_random_cities(20, rng=RandomSource(2024))


class ScriptedRandom:
    """Stand-in RandomSource replaying fixed draws."""

    def __init__(self, probabilities=(), integers=()):
        self._probabilities = iter(probabilities)
        self._integers = iter(integers)

    def probability(self):
        return next(self._probabilities)

    def uniform_int(self, lo, hi):
        value = next(self._integers)
        assert lo <= value < hi
        return value


@pytest.fixture
def scripted_random():
    return ScriptedRandom
