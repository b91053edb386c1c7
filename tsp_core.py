"""
PSO-TSP Solver - Core Module
Contains the fundamental data structures for representing the TSP problem:
cities, tours over city indices, and the cyclic tour cost.
"""

import numpy as np
from typing import List, Sequence


class InvalidInput(ValueError):
    """Raised for a bad city catalog, route or configuration value."""


class InternalInvariantViolation(RuntimeError):
    """Raised when a particle stops holding a valid permutation."""


class City:
    """Represents a city with x, y coordinates."""

    __slots__ = ("_x", "_y", "name")

    def __init__(self, x: float, y: float, name: str = None):
        self._x = x
        self._y = y
        self.name = name or f"City({x}, {y})"

    @property
    def x(self):
        return self._x

    @property
    def y(self):
        return self._y

    def distance_to(self, city: 'City') -> float:
        """Calculate Euclidean distance to another city."""
        dx = self._x - city.x
        dy = self._y - city.y
        return float(np.sqrt(dx * dx + dy * dy))

    def __repr__(self):
        return f"City({self._x}, {self._y})"

    def __eq__(self, other):
        if not isinstance(other, City):
            return False
        return self._x == other.x and self._y == other.y

    def __hash__(self):
        return hash((self._x, self._y))


def is_permutation(route: Sequence[int], n: int) -> bool:
    """True when route holds every index of [0, n) exactly once."""
    if len(route) != n:
        return False
    seen = [False] * n
    for idx in route:
        if not 0 <= idx < n or seen[idx]:
            return False
        seen[idx] = True
    return True


def check_permutation(route: Sequence[int], n: int, what: str = "route"):
    """Raise InternalInvariantViolation unless route is a permutation of [0, n)."""
    if not is_permutation(route, n):
        raise InternalInvariantViolation(
            f"{what} is not a permutation of 0..{n - 1}: {list(route)}"
        )


def _check_route(route: Sequence[int], cities: Sequence[City]):
    if len(route) < 2:
        raise InvalidInput(
            f"A tour needs at least 2 cities, got {len(route)}"
        )
    if len(cities) != len(route):
        raise InvalidInput(
            f"Route visits {len(route)} cities but the catalog has {len(cities)}"
        )


def compute_cost(route: Sequence[int], cities: Sequence[City]) -> float:
    """
    Total Euclidean length of the cyclic tour, closing edge included.

    Args:
        route: Permutation of city indices
        cities: City catalog indexed by the route

    Returns:
        Tour length as a float
    """
    _check_route(route, cities)

    total = 0.0
    for i in range(len(route) - 1):
        total += cities[route[i]].distance_to(cities[route[i + 1]])
    total += cities[route[-1]].distance_to(cities[route[0]])
    return total


class CostEvaluator:
    """Plain Euclidean cost evaluator; recomputes every distance."""

    def compute(self, route: Sequence[int], cities: Sequence[City]) -> float:
        return compute_cost(route, cities)


class DistanceMatrix:
    """Precomputed distance matrix for efficient distance lookups."""

    def __init__(self, cities: List[City]):
        self.cities = cities
        self.n = len(cities)
        self.matrix = np.zeros((self.n, self.n))

        # Precompute all distances
        for i in range(self.n):
            for j in range(i + 1, self.n):
                dist = cities[i].distance_to(cities[j])
                self.matrix[i][j] = dist
                self.matrix[j][i] = dist

        # Plain lists index much faster than numpy scalars in the hot loop
        self._rows = self.matrix.tolist()

    def get_distance_by_index(self, i: int, j: int) -> float:
        """Get distance by city indices."""
        return self._rows[i][j]

    def compute(self, route: Sequence[int], cities: Sequence[City]) -> float:
        """Same result as compute_cost, answered from the table when possible."""
        if cities is not self.cities:
            return compute_cost(route, cities)
        _check_route(route, cities)

        rows = self._rows
        total = 0.0
        for i in range(len(route) - 1):
            total += rows[route[i]][route[i + 1]]
        total += rows[route[-1]][route[0]]
        return total


class Tour:
    """A solution: a route over city indices together with its catalog."""

    def __init__(self, route: Sequence[int], catalog: List[City]):
        self.route = list(route)
        self.catalog = catalog
        self._distance = None

    @property
    def cities(self) -> List[City]:
        """Cities in visiting order."""
        return [self.catalog[i] for i in self.route]

    def get_total_distance(self) -> float:
        """Calculate the total distance of the tour."""
        if self._distance is None:
            self._distance = compute_cost(self.route, self.catalog)
        return self._distance

    def clone(self) -> 'Tour':
        """Create a copy of the tour sharing the same catalog."""
        return Tour(self.route, self.catalog)

    def __len__(self):
        return len(self.route)

    def __repr__(self):
        return f"Tour(cities={len(self.route)}, distance={self.get_total_distance():.2f})"

    def __getitem__(self, index):
        return self.route[index]
