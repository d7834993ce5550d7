# -*- coding: utf-8 -*-
"""
Network Summary Module

Derives the contact tracing network parameters for one or many roots:

  - inDegree / outDegree: distinct direct (one hop) contacts
  - ingoingContactChain / outgoingContactChain: distinct locations reachable
    by time-respecting paths
  - in/out Min/Max/MeanDistance: aggregates of the per-location shortest paths

Batched queries are described by TraceQuery objects. Every query is validated
before the first one is traced, then the batch runs as an explicit loop,
sequentially or on a process pool sharing the same read-only MovementLog.

Usage Examples:
===============
>>> log = MovementLog(movements)
>>> summary = network_summary(log, root=['2645', '3749'], t_end='2005-10-31', days=90)
>>> summary.select(['root', 'inDegree', 'outDegree'])

>>> # Summary of already traced roots
>>> ct = trace(log, root='2645', t_end='2005-10-31', days=90)
>>> network_summary(ct)
"""

import logging
from collections.abc import Iterable as IterableABC
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import polars as pl
from tqdm import tqdm

from .config import TraceConfig
from .contact_trace import (
    DATE_INTERVAL_SCHEMA,
    ContactTrace,
    TraceWindow,
    as_trace_list,
    resolve_windows,
    trace_windows,
)
from .contacts import Direction
from .exceptions import ValidationError
from .movement_log import MovementLog, as_movement_log, normalize_location
from .shortest_paths import ShortestPaths

logger = logging.getLogger(__name__)


SUMMARY_SCHEMA = {
    **DATE_INTERVAL_SCHEMA,
    'inDegree': pl.Int64,
    'outDegree': pl.Int64,
    'ingoingContactChain': pl.Int64,
    'outgoingContactChain': pl.Int64,
    'inMinDistance': pl.Int64,
    'inMaxDistance': pl.Int64,
    'inMeanDistance': pl.Float64,
    'outMinDistance': pl.Int64,
    'outMaxDistance': pl.Int64,
    'outMeanDistance': pl.Float64,
}

IN_WINDOW_COLUMNS = ['root', 'inBegin', 'inEnd', 'inDays']
OUT_WINDOW_COLUMNS = ['root', 'outBegin', 'outEnd', 'outDays']


@dataclass(frozen=True)
class TraceQuery:
    """One (root, ingoing window, outgoing window) combination of a batch"""
    root: str
    ingoing: TraceWindow
    outgoing: TraceWindow


def _as_list(value: Any) -> List[Any]:
    if value is None or isinstance(value, (str, bytes, date)) or not isinstance(value, IterableABC):
        return [value]
    return list(value)


def build_queries(root: Any, t_end: Any = None, days: Any = None,
                  in_begin: Any = None, in_end: Any = None,
                  out_begin: Any = None, out_end: Any = None,
                  date_format: str = '%Y-%m-%d') -> List[TraceQuery]:
    """
    Expand scalar or vector parameters into validated TraceQuery objects

    Parameters of length 1 are recycled over all roots; any other length must
    equal the number of roots.

    Raises:
        ValidationError: Missing root, missing window parameters or vectors of
            inconsistent length
        InvalidWindowError: Negative days or inverted windows
    """
    if root is None:
        raise ValidationError("Missing parameter: root")
    roots = [normalize_location(r) for r in _as_list(root)]
    if not roots:
        raise ValidationError("root must contain at least one location")

    params = {
        't_end': t_end, 'days': days,
        'in_begin': in_begin, 'in_end': in_end,
        'out_begin': out_begin, 'out_end': out_end,
    }
    expanded: Dict[str, List[Any]] = {}
    for name, value in params.items():
        values = _as_list(value)
        if len(values) == 1:
            values = values * len(roots)
        elif len(values) != len(roots):
            raise ValidationError(
                f"Length of {name} ({len(values)}) does not match the number of roots ({len(roots)})"
            )
        expanded[name] = values

    queries = []
    for i, r in enumerate(roots):
        windows = resolve_windows(
            **{name: values[i] for name, values in expanded.items()},
            date_format=date_format,
        )
        queries.append(TraceQuery(r, windows[Direction.IN], windows[Direction.OUT]))
    return queries


def run_query(log: MovementLog, query: TraceQuery, config: TraceConfig) -> ContactTrace:
    return trace_windows(log, query.root, query.ingoing, query.outgoing, config)


_worker_state: Dict[str, Any] = {}


def _init_worker(log: MovementLog, config: TraceConfig):
    """Process pool initializer, ships the shared log to each worker once"""
    _worker_state['log'] = log
    _worker_state['config'] = config


def _trace_worker(query: TraceQuery) -> ContactTrace:
    return run_query(_worker_state['log'], query, _worker_state['config'])


def trace_many(log: MovementLog, queries: Sequence[TraceQuery],
               config: Optional[TraceConfig] = None) -> List[ContactTrace]:
    """
    Trace every query independently, preserving query order

    Uses a process pool when config.num_processes > 1 and there is more than one
    query; each worker builds its own contact sets from the shared log.
    """
    config = config or TraceConfig()
    if not queries:
        return []

    if config.num_processes > 1 and len(queries) > 1:
        workers = min(config.num_processes, len(queries))
        logger.info("Tracing %d queries on %d processes", len(queries), workers)
        chunksize = max(1, len(queries) // (workers * 4))
        with ProcessPoolExecutor(max_workers=workers, initializer=_init_worker,
                                 initargs=(log, config)) as executor:
            results = executor.map(_trace_worker, queries, chunksize=chunksize)
            if config.progress:
                results = tqdm(results, total=len(queries), desc="Contact tracing")
            return list(results)

    logger.info("Tracing %d queries", len(queries))
    iterator = tqdm(queries, desc="Contact tracing") if config.progress else queries
    return [run_query(log, query, config) for query in iterator]


def summarize_trace(ct: ContactTrace, exclude_root: bool = True) -> Dict[str, Any]:
    """Network parameters of one ContactTrace as a summary row"""
    in_paths = ShortestPaths.from_contacts(ct.ingoing, exclude_root)
    out_paths = ShortestPaths.from_contacts(ct.outgoing, exclude_root)
    return {
        **ct.date_interval(),
        'inDegree': ct.ingoing.in_degree(exclude_root),
        'outDegree': ct.outgoing.out_degree(exclude_root),
        'ingoingContactChain': ct.ingoing.ingoing_contact_chain(exclude_root),
        'outgoingContactChain': ct.outgoing.outgoing_contact_chain(exclude_root),
        'inMinDistance': in_paths.min_distance,
        'inMaxDistance': in_paths.max_distance,
        'inMeanDistance': in_paths.mean_distance,
        'outMinDistance': out_paths.min_distance,
        'outMaxDistance': out_paths.max_distance,
        'outMeanDistance': out_paths.mean_distance,
    }


def _is_trace_input(x: Any) -> bool:
    if isinstance(x, ContactTrace):
        return True
    return isinstance(x, (list, tuple)) and all(isinstance(item, ContactTrace) for item in x)


def collect_traces(x: Any, root: Any = None, t_end: Any = None, days: Any = None,
                   in_begin: Any = None, in_end: Any = None,
                   out_begin: Any = None, out_end: Any = None,
                   config: Optional[TraceConfig] = None) -> List[ContactTrace]:
    """
    Resolve the input of the summary functions into ContactTrace objects

    x is either one or a list of ContactTrace objects (no further parameters
    allowed), or movements (MovementLog or raw frame) together with root and a
    window specification.
    """
    config = config or TraceConfig()
    params = (root, t_end, days, in_begin, in_end, out_begin, out_end)

    if _is_trace_input(x):
        if any(value is not None for value in params):
            raise ValidationError("Query parameters are not used when summarizing ContactTrace objects")
        return as_trace_list(x)

    if root is None:
        raise ValidationError("Missing parameters: root is required when summarizing movements")
    log = as_movement_log(x, config)
    queries = build_queries(root, t_end, days, in_begin, in_end, out_begin, out_end, config.date_format)
    return trace_many(log, queries, config)


def network_summary(x: Any, root: Any = None, t_end: Any = None, days: Any = None,
                    in_begin: Any = None, in_end: Any = None,
                    out_begin: Any = None, out_end: Any = None,
                    config: Optional[TraceConfig] = None) -> pl.DataFrame:
    """
    Network summary, one row per (root, window) combination

    Parameters:
        x: ContactTrace, list of ContactTrace, MovementLog or movement frame
        root: Root or roots to trace (movement input only)
        t_end, days: End date and lookback days shared by both windows
        in_begin, in_end, out_begin, out_end: Independent windows per direction
        config (Optional[TraceConfig]): Column mapping, root policy, workers

    Returns:
        pl.DataFrame: Columns of SUMMARY_SCHEMA

    Raises:
        ValidationError: Invalid movements or parameters, raised before any tracing
    """
    config = config or TraceConfig()
    traces = collect_traces(x, root, t_end, days, in_begin, in_end, out_begin, out_end, config)
    rows = [summarize_trace(ct, config.exclude_root) for ct in traces]
    return pl.DataFrame(rows, schema=SUMMARY_SCHEMA)


def _summary_columns(columns: List[str], x: Any, root: Any, t_end: Any, days: Any,
                     in_begin: Any, in_end: Any, out_begin: Any, out_end: Any,
                     config: Optional[TraceConfig]) -> pl.DataFrame:
    summary = network_summary(x, root, t_end, days, in_begin, in_end, out_begin, out_end, config)
    return summary.select(columns)


def in_degree(x: Any, root: Any = None, t_end: Any = None, days: Any = None,
              in_begin: Any = None, in_end: Any = None,
              out_begin: Any = None, out_end: Any = None,
              config: Optional[TraceConfig] = None) -> pl.DataFrame:
    """Number of distinct locations with direct movements to the root"""
    return _summary_columns(IN_WINDOW_COLUMNS + ['inDegree'], x, root, t_end, days,
                            in_begin, in_end, out_begin, out_end, config)


def out_degree(x: Any, root: Any = None, t_end: Any = None, days: Any = None,
               in_begin: Any = None, in_end: Any = None,
               out_begin: Any = None, out_end: Any = None,
               config: Optional[TraceConfig] = None) -> pl.DataFrame:
    """Number of distinct locations with direct movements from the root"""
    return _summary_columns(OUT_WINDOW_COLUMNS + ['outDegree'], x, root, t_end, days,
                            in_begin, in_end, out_begin, out_end, config)


def ingoing_contact_chain(x: Any, root: Any = None, t_end: Any = None, days: Any = None,
                          in_begin: Any = None, in_end: Any = None,
                          out_begin: Any = None, out_end: Any = None,
                          config: Optional[TraceConfig] = None) -> pl.DataFrame:
    """Number of distinct locations with direct or indirect time-respecting movements to the root"""
    return _summary_columns(IN_WINDOW_COLUMNS + ['ingoingContactChain'], x, root, t_end, days,
                            in_begin, in_end, out_begin, out_end, config)


def outgoing_contact_chain(x: Any, root: Any = None, t_end: Any = None, days: Any = None,
                           in_begin: Any = None, in_end: Any = None,
                           out_begin: Any = None, out_end: Any = None,
                           config: Optional[TraceConfig] = None) -> pl.DataFrame:
    """Number of distinct locations with direct or indirect time-respecting movements from the root"""
    return _summary_columns(OUT_WINDOW_COLUMNS + ['outgoingContactChain'], x, root, t_end, days,
                            in_begin, in_end, out_begin, out_end, config)
