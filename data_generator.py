"""
City catalog sources: random and circular layouts, raw coordinate pairs,
and TSPLIB files.
"""

import os
import re
from typing import Iterable, List, Optional, Tuple

import numpy as np

from random_source import RandomSource
from tsp_core import City, InvalidInput

_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_COORD_LINE = re.compile(rf"^\s*(\d+)\s+({_NUMBER})\s+({_NUMBER})\s*$")
_DIMENSION_LINE = re.compile(r"^DIMENSION\s*:?\s*(\d+)\s*$")


def generate_random_cities(
    n: int,
    width: int = 100,
    height: int = 100,
    rng: Optional[RandomSource] = None
) -> List[City]:
    """
    Generate cities with integer coordinates in [0, width) x [0, height).

    Args:
        n: Number of cities to generate
        width: Width of the area
        height: Height of the area
        rng: Random source; a fresh entropy-seeded one when omitted

    Returns:
        List of randomly placed cities
    """
    if n < 2:
        raise InvalidInput(f"At least 2 cities are required, got {n}")
    rng = rng or RandomSource()

    cities = []
    for i in range(n):
        x = rng.uniform_int(0, width)
        y = rng.uniform_int(0, height)
        cities.append(City(x, y, name=f"City_{i}"))
    return cities


def generate_circle_cities(n: int, radius: float = 50, center_x: float = 50, center_y: float = 50) -> List[City]:
    """Cities evenly spaced on a circle; the optimal tour is the polygon perimeter."""
    if n < 2:
        raise InvalidInput(f"At least 2 cities are required, got {n}")

    angles = 2 * np.pi * np.arange(n) / n
    xs = center_x + radius * np.cos(angles)
    ys = center_y + radius * np.sin(angles)
    return [City(float(x), float(y), name=f"City_{i}") for i, (x, y) in enumerate(zip(xs, ys))]


def cities_from_coordinates(coordinates: Iterable[Tuple[float, float]]) -> List[City]:
    """Build a catalog from (x, y) pairs, keeping their order."""
    cities = []
    for i, pair in enumerate(coordinates):
        if len(pair) != 2:
            raise InvalidInput(f"Coordinate {i} must be an (x, y) pair, got {pair!r}")
        cities.append(City(pair[0], pair[1], name=f"City_{i}"))
    return cities


def load_tsp_file(path: str) -> List[City]:
    """
    TSPLIB loader for files with a NODE_COORD_SECTION.

    Section names are matched case-insensitively and blank lines are skipped.
    Every row between NODE_COORD_SECTION and EOF (or the next *_SECTION) must
    be an "index x y" row, and the row count must agree with DIMENSION when
    the header gives one. Files without the section header are read from
    their first coordinate row.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"TSP file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_lines = [l.strip() for l in f if l.strip()]
    except UnicodeDecodeError as e:
        raise InvalidInput(f"TSP file is not valid UTF-8 text: {path} ({e.reason})") from e

    start_index = None
    dimension = None
    for i, line in enumerate(raw_lines):
        upper = line.upper()
        if "NODE_COORD_SECTION" in upper:
            start_index = i + 1
            break
        header = _DIMENSION_LINE.match(upper)
        if header:
            dimension = int(header.group(1))

    if start_index is None:
        for i, line in enumerate(raw_lines):
            if _COORD_LINE.match(line):
                start_index = i
                break

    if start_index is None:
        raise InvalidInput(f"Could not find coordinate section in: {path}")

    cities = []
    for line in raw_lines[start_index:]:
        upper = line.upper()
        if upper.startswith("EOF") or upper.endswith("_SECTION"):
            break

        match = _COORD_LINE.match(line)
        if not match:
            raise InvalidInput(f"Malformed coordinate row in {path}: {line!r}")

        index, x, y = match.groups()
        cities.append(City(float(x), float(y), name=f"City_{index}"))

    if dimension is not None and len(cities) != dimension:
        raise InvalidInput(f"{path} declares DIMENSION {dimension} but lists {len(cities)} coordinates")

    if len(cities) < 2:
        raise InvalidInput(f"Need at least 2 coordinates in {path}, parsed {len(cities)}")

    return cities
