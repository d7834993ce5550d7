# -*- coding: utf-8 -*-
"""
Contact Set Module

Implements the time-respecting traversal that expands a root location into its
outgoing (forward) or ingoing (backward) contact chain within a date window.

Time-Respecting Path:
=====================
Outgoing: movements m1..mk with m1.source = root, mi.destination = m(i+1).source
and mi.t <= m(i+1).t. An entity cannot move onward before it arrived.

Ingoing: the time-reversed mirror. m1.destination = root,
mi.source = m(i+1).destination and mi.t >= m(i+1).t.

Every movement on the path must lie in [window_start, window_end].

Traversal:
==========
Breadth-first expansion over (location, usable date) states:
  1. The root enters the frontier with the window boundary as usable date
  2. Expanding (L, t) outgoing takes movements leaving L within [t, window_end]
     (ingoing: movements arriving at L within [window_start, t])
  3. Each new movement is recorded with distance = distance of its state + 1
  4. The far endpoint enters the frontier with the movement date, once per
     (location, date) key

States are dequeued in order of distance, so the first discovery of a movement
carries its shortest hop distance.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Deque, Dict, Iterator, Optional, Set, Tuple

import networkx as nx
import polars as pl

from .exceptions import DirectionMismatchError, InvalidWindowError, ValidationError
from .movement_log import MovementLog, MovementRecord, normalize_location

logger = logging.getLogger(__name__)


class Direction(Enum):
    """Direction of contact tracing"""
    IN = 'in'  # Backward, possible sources of contact
    OUT = 'out'  # Forward, possible spread of contact


CONTACT_SCHEMA = {
    'root': pl.Utf8,
    'direction': pl.Utf8,
    'source': pl.Utf8,
    'destination': pl.Utf8,
    't': pl.Date,
    'id': pl.Utf8,
    'n': pl.Float64,
    'category': pl.Utf8,
    'distance': pl.Int64,
}


@dataclass(frozen=True)
class ContactEdge:
    """Movement reached by a time-respecting path, with its hop distance from the root"""
    index: int
    source: str
    destination: str
    t: date
    id: Optional[str]
    n: Optional[float]
    category: Optional[str]
    distance: int

    @classmethod
    def from_record(cls, record: MovementRecord, distance: int) -> 'ContactEdge':
        return cls(
            index=record.index,
            source=record.source,
            destination=record.destination,
            t=record.t,
            id=record.id,
            n=record.n,
            category=record.category,
            distance=distance,
        )


@dataclass(frozen=True)
class ContactSet:
    """
    Contacts of one root in one direction within one date window

    Attributes:
        root (str): Root location
        direction (Direction): Direction of the traversal
        window_start (date): First date of the window (inclusive)
        window_end (date): Last date of the window (inclusive)
        edges (Tuple[ContactEdge, ...]): Reached movements ordered by distance, date, record order
    """
    root: str
    direction: Direction
    window_start: date
    window_end: date
    edges: Tuple[ContactEdge, ...] = ()

    def __len__(self) -> int:
        return len(self.edges)

    def __iter__(self) -> Iterator[ContactEdge]:
        return iter(self.edges)

    @property
    def is_empty(self) -> bool:
        return not self.edges

    @property
    def days(self) -> int:
        return (self.window_end - self.window_start).days

    def far_endpoint(self, edge: ContactEdge) -> str:
        """Location on the side of the edge away from the root"""
        return edge.destination if self.direction is Direction.OUT else edge.source

    def near_endpoint(self, edge: ContactEdge) -> str:
        return edge.source if self.direction is Direction.OUT else edge.destination

    def contacts(self, max_distance: Optional[int] = None, exclude_root: bool = True) -> Set[str]:
        """Distinct far endpoints, optionally only those of edges up to max_distance"""
        found = {
            self.far_endpoint(edge) for edge in self.edges
            if max_distance is None or edge.distance <= max_distance
        }
        if exclude_root:
            found.discard(self.root)
        return found

    def _require(self, direction: Direction, metric: str):
        if self.direction is not direction:
            raise DirectionMismatchError(
                f"Unable to determine {metric} for {self.direction.value}going contacts"
            )

    def in_degree(self, exclude_root: bool = True) -> int:
        self._require(Direction.IN, 'InDegree')
        return len(self.contacts(max_distance=1, exclude_root=exclude_root))

    def out_degree(self, exclude_root: bool = True) -> int:
        self._require(Direction.OUT, 'OutDegree')
        return len(self.contacts(max_distance=1, exclude_root=exclude_root))

    def ingoing_contact_chain(self, exclude_root: bool = True) -> int:
        self._require(Direction.IN, 'IngoingContactChain')
        return len(self.contacts(exclude_root=exclude_root))

    def outgoing_contact_chain(self, exclude_root: bool = True) -> int:
        self._require(Direction.OUT, 'OutgoingContactChain')
        return len(self.contacts(exclude_root=exclude_root))

    def to_frame(self) -> pl.DataFrame:
        """Reached movements as a table, one row per movement"""
        rows = [
            {
                'root': self.root,
                'direction': self.direction.value,
                'source': edge.source,
                'destination': edge.destination,
                't': edge.t,
                'id': edge.id,
                'n': edge.n,
                'category': edge.category,
                'distance': edge.distance,
            }
            for edge in self.edges
        ]
        return pl.DataFrame(rows, schema=CONTACT_SCHEMA)

    def to_graph(self) -> nx.MultiDiGraph:
        """
        Graph view of the contacts for plotting and reporting

        Nodes carry the minimum hop distance at which they were reached (0 for the
        root), edges carry the movement attributes keyed by record index.
        """
        graph = nx.MultiDiGraph(root=self.root, direction=self.direction.value)
        graph.add_node(self.root, distance=0)
        for edge in self.edges:
            far = self.far_endpoint(edge)
            if far != self.root:
                current = graph.nodes[far].get('distance') if far in graph else None
                if current is None or edge.distance < current:
                    graph.add_node(far, distance=edge.distance)
            graph.add_edge(
                edge.source, edge.destination, key=edge.index,
                t=edge.t, id=edge.id, n=edge.n, category=edge.category,
                distance=edge.distance,
            )
        return graph


def trace_contacts(log: MovementLog, root: Any, direction: Direction,
                   window_start: date, window_end: date,
                   max_distance: Optional[int] = None) -> ContactSet:
    """
    Collect every movement reachable from (OUT) or leading to (IN) the root by a
    time-respecting path inside [window_start, window_end]

    Parameters:
        log (MovementLog): Indexed movement records
        root: Root location id
        direction (Direction): Direction.OUT for forward tracing, Direction.IN for backward
        window_start (date): First date of the window (inclusive)
        window_end (date): Last date of the window (inclusive)
        max_distance (Optional[int]): Do not expand beyond this many hops from the root

    Returns:
        ContactSet: Empty when the root has no movements in the window

    Raises:
        InvalidWindowError: window_start is after window_end
        ValidationError: max_distance below 1
    """
    root = normalize_location(root)
    if not isinstance(direction, Direction):
        raise ValidationError(f"direction must be a Direction, got {direction!r}")
    if window_start > window_end:
        raise InvalidWindowError(f"Window start {window_start} is after window end {window_end}")
    if max_distance is not None and max_distance < 1:
        raise ValidationError(f"max_distance must be at least 1, got {max_distance}")

    outgoing = direction is Direction.OUT
    root_date = window_start if outgoing else window_end

    discovered: Dict[int, ContactEdge] = {}
    visited: Set[Tuple[str, date]] = {(root, root_date)}
    frontier: Deque[Tuple[str, date, int]] = deque([(root, root_date, 0)])

    while frontier:
        location, usable, distance = frontier.popleft()
        if max_distance is not None and distance >= max_distance:
            continue

        if outgoing:
            movements = log.outgoing(location, usable, window_end)
        else:
            movements = log.ingoing(location, window_start, usable)

        for record in movements:
            if record.index not in discovered:
                discovered[record.index] = ContactEdge.from_record(record, distance + 1)

            key = (record.destination if outgoing else record.source, record.t)
            if key not in visited:
                visited.add(key)
                frontier.append((key[0], key[1], distance + 1))

    edges = sorted(discovered.values(), key=lambda e: (e.distance, e.t, e.index))
    logger.debug(
        "Traced %s %sgoing: %d movements, %d visited states",
        root, direction.value, len(edges), len(visited),
    )
    return ContactSet(
        root=root,
        direction=direction,
        window_start=window_start,
        window_end=window_end,
        edges=tuple(edges),
    )
