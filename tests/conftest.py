import random
from datetime import date, timedelta

import pytest

from contact_trace_core import MovementLog


START = date(2024, 1, 1)


def day(n: int) -> date:
    """Calendar date of day n, day 1 being 2024-01-01"""
    return START + timedelta(days=n - 1)


def movements(*rows):
    """Build movement dicts from (source, destination, day) tuples"""
    return [{'source': s, 'destination': d, 't': day(n)} for s, d, n in rows]


def random_movements(seed: int, n_locations: int = 6, n_movements: int = 10, n_days: int = 6):
    rng = random.Random(seed)
    locations = [f"L{i}" for i in range(n_locations)]
    rows = []
    for _ in range(n_movements):
        source, destination = rng.sample(locations, 2)
        rows.append((source, destination, rng.randint(1, n_days)))
    return movements(*rows)


@pytest.fixture
def chain_log():
    """A -> B (day 1), B -> C (day 2), C -> D (day 5)"""
    return MovementLog(movements(('A', 'B', 1), ('B', 'C', 2), ('C', 'D', 5)))


@pytest.fixture
def reversed_log():
    """B moved to A before A moved to B"""
    return MovementLog(movements(('A', 'B', 2), ('B', 'A', 1)))


@pytest.fixture
def revisit_log():
    """B is reached on day 1 (via C) and on day 3 (directly); only the day 1 arrival reaches D"""
    return MovementLog(movements(
        ('A', 'B', 3),
        ('A', 'C', 1),
        ('C', 'B', 1),
        ('B', 'D', 2),
    ))
