import pytest

from contact_trace_core import (
    Direction,
    MovementLog,
    ShortestPaths,
    shortest_paths,
    trace,
    trace_contacts,
)

from conftest import day, movements, random_movements


def brute_force_distances(log, root, direction, begin, end):
    """Enumerate every time-respecting path (no movement used twice) and keep the shortest per location"""
    records = [r for r in log.records if begin <= r.t <= end]
    best = {}

    def extend(location, last_t, used, length):
        for r in records:
            if r.index in used:
                continue
            if direction is Direction.OUT:
                near, far = r.source, r.destination
                allowed = last_t is None or r.t >= last_t
            else:
                near, far = r.destination, r.source
                allowed = last_t is None or r.t <= last_t
            if near != location or not allowed:
                continue
            best[far] = min(best.get(far, length + 1), length + 1)
            extend(far, r.t, used | {r.index}, length + 1)

    extend(root, None, frozenset(), 0)
    return best


def test_chain_distances(chain_log):
    paths = ShortestPaths.from_contacts(trace_contacts(chain_log, 'A', Direction.OUT, day(1), day(5)))
    assert paths.distances == {'B': 1, 'C': 2, 'D': 3}
    assert paths.depth == 3
    assert paths.count == 3
    assert paths.min_distance == 1
    assert paths.max_distance == 3
    assert paths.mean_distance == pytest.approx(2.0)


def test_minimum_is_kept(revisit_log):
    paths = ShortestPaths.from_contacts(trace_contacts(revisit_log, 'A', Direction.OUT, day(1), day(5)))
    assert paths.distances == {'B': 1, 'C': 1, 'D': 3}


def test_empty_contacts(chain_log):
    paths = ShortestPaths.from_contacts(trace_contacts(chain_log, 'Z', Direction.OUT, day(1), day(5)))
    assert paths.distances == {}
    assert paths.depth == 0
    assert paths.count == 0
    assert paths.min_distance is None
    assert paths.max_distance is None
    assert paths.mean_distance is None


def test_root_policy():
    log = MovementLog(movements(('A', 'B', 1), ('B', 'A', 2)))
    contacts = trace_contacts(log, 'A', Direction.OUT, day(1), day(5))
    assert ShortestPaths.from_contacts(contacts).distances == {'B': 1}
    assert ShortestPaths.from_contacts(contacts, exclude_root=False).distances == {'A': 2, 'B': 1}


@pytest.mark.parametrize("seed", range(30))
@pytest.mark.parametrize("direction", [Direction.OUT, Direction.IN])
def test_matches_exhaustive_path_enumeration(seed, direction):
    log = MovementLog(random_movements(seed, n_locations=5, n_movements=9, n_days=5))
    begin, end = day(1), day(5)
    for root in log.locations():
        contacts = trace_contacts(log, root, direction, begin, end)
        paths = ShortestPaths.from_contacts(contacts, exclude_root=False)
        assert paths.distances == brute_force_distances(log, root, direction, begin, end)
        assert all(distance >= 1 for distance in paths.distances.values())


@pytest.mark.parametrize("seed", range(10))
def test_count_agrees_with_contact_chain(seed):
    log = MovementLog(random_movements(seed, n_movements=20))
    for root in log.locations():
        ct = trace(log, root, t_end=day(6), days=5)
        for exclude_root in (True, False):
            assert (ShortestPaths.from_contacts(ct.outgoing, exclude_root).count
                    == ct.outgoing.outgoing_contact_chain(exclude_root))
            assert (ShortestPaths.from_contacts(ct.ingoing, exclude_root).count
                    == ct.ingoing.ingoing_contact_chain(exclude_root))


def test_shortest_paths_table(chain_log):
    ct = trace(chain_log, 'B', t_end=day(5), days=4)
    table = shortest_paths(ct)
    assert table.columns == ['root', 'direction', 'begin', 'end', 'days', 'location', 'distance']
    assert table.rows() == [
        ('B', 'in', day(1), day(5), 4, 'A', 1),
        ('B', 'out', day(1), day(5), 4, 'C', 1),
        ('B', 'out', day(1), day(5), 4, 'D', 2),
    ]


def test_shortest_paths_table_for_many_traces(chain_log):
    traces = [trace(chain_log, root, t_end=day(5), days=4) for root in ('A', 'Z')]
    table = shortest_paths(traces)
    assert table['root'].unique().to_list() == ['A']
    assert table.height == 3
    assert shortest_paths([]).height == 0
