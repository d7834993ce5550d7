# -*- coding: utf-8 -*-
"""
Shortest Paths Module

Minimum number of time-respecting hops from the root to every location of a
contact set. A location can be reached by several time-respecting paths, so
the same location may appear at several distances; only the minimum is kept.

Counts are taken from the same set of locations as the contact chain, with the
same root policy, so ShortestPaths.count always equals the contact chain size.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import polars as pl

from .contact_trace import ContactTrace, as_trace_list
from .contacts import ContactSet, Direction


SHORTEST_PATH_SCHEMA = {
    'root': pl.Utf8,
    'direction': pl.Utf8,
    'begin': pl.Date,
    'end': pl.Date,
    'days': pl.Int64,
    'location': pl.Utf8,
    'distance': pl.Int64,
}


@dataclass(frozen=True)
class ShortestPaths:
    """
    Per-location minimum distance for one contact set

    Attributes:
        contacts (ContactSet): Contact set the distances were derived from
        distances (Dict[str, int]): Location -> minimum hop distance from the root
    """
    contacts: ContactSet
    distances: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_contacts(cls, contacts: ContactSet, exclude_root: bool = True) -> 'ShortestPaths':
        distances: Dict[str, int] = {}
        for edge in contacts.edges:
            location = contacts.far_endpoint(edge)
            if exclude_root and location == contacts.root:
                continue
            current = distances.get(location)
            if current is None or edge.distance < current:
                distances[location] = edge.distance
        return cls(contacts=contacts, distances=dict(sorted(distances.items())))

    @property
    def root(self) -> str:
        return self.contacts.root

    @property
    def direction(self) -> Direction:
        return self.contacts.direction

    @property
    def count(self) -> int:
        return len(self.distances)

    @property
    def depth(self) -> int:
        """Longest of the shortest paths, 0 when nothing was reached"""
        return max(self.distances.values(), default=0)

    @property
    def min_distance(self) -> Optional[int]:
        return min(self.distances.values()) if self.distances else None

    @property
    def max_distance(self) -> Optional[int]:
        return max(self.distances.values()) if self.distances else None

    @property
    def mean_distance(self) -> Optional[float]:
        if not self.distances:
            return None
        return float(np.mean(list(self.distances.values())))

    def to_frame(self) -> pl.DataFrame:
        rows = [
            {
                'root': self.root,
                'direction': self.direction.value,
                'begin': self.contacts.window_start,
                'end': self.contacts.window_end,
                'days': self.contacts.days,
                'location': location,
                'distance': distance,
            }
            for location, distance in self.distances.items()
        ]
        return pl.DataFrame(rows, schema=SHORTEST_PATH_SCHEMA)


def shortest_paths(traces: Union[ContactTrace, Iterable[ContactTrace]],
                   exclude_root: bool = True) -> pl.DataFrame:
    """
    Shortest path table for one or many ContactTrace objects

    Rows are ingoing locations then outgoing locations of each trace, in trace order.
    """
    frames: List[pl.DataFrame] = []
    for ct in as_trace_list(traces):
        for contacts in (ct.ingoing, ct.outgoing):
            frames.append(ShortestPaths.from_contacts(contacts, exclude_root).to_frame())
    if not frames:
        return pl.DataFrame(schema=SHORTEST_PATH_SCHEMA)
    return pl.concat(frames)
