# -*- coding: utf-8 -*-
"""
Contact Tracing Core Module Package

This package implements epidemiological contact tracing on movement records
between locations (e.g. livestock holdings), from record validation through
time-respecting contact chains to the network parameters used for forward and
backward contact tracing and risk based surveillance.

Module Architecture:
==================
1. movement_log
   - Validates raw movement records and indexes them by source and destination
   - Windowed lookups ordered by movement date

2. contacts
   - Time-respecting breadth-first traversal from a root, ingoing or outgoing
   - ContactSet with degree and contact chain metrics, table and graph views

3. contact_trace
   - Pairs ingoing and outgoing contacts of one root
   - Window resolution from end date + lookback days or explicit boundaries

4. shortest_paths
   - Minimum time-respecting hop distance per reached location

5. network_summary
   - Batch queries over roots and windows, sequential or on a process pool
   - inDegree, outDegree, ingoingContactChain, outgoingContactChain, distances

Data Flow:
=========
Raw Movement Records
    ↓
[movement_log] Validation and Indexing
    ↓
MovementLog
    ↓
[contacts] Time-Respecting Traversal (per root, direction, window)
    ↓
ContactSet (ingoing) + ContactSet (outgoing)
    ↓
[contact_trace] ContactTrace
    ↓
[shortest_paths] / [network_summary] Network Parameters

Usage Examples:
==============
>>> from contact_trace_core import MovementLog, trace, network_summary
>>> log = MovementLog(movements)
>>> ct = trace(log, root='2645', t_end='2005-10-31', days=90)
>>> ct.outgoing.outgoing_contact_chain()
>>> network_summary(log, root=['2645', '3749'], t_end='2005-10-31', days=90)

External Dependencies:
====================
- polars: Validation, indexing and result tables
- pandas: Accepted as movement input
- numpy: Distance aggregates
- networkx: Graph view of contacts
- tqdm: Progress bars for batched queries

Version: v1.0.0
"""

from .config import TraceConfig
from .exceptions import DirectionMismatchError, InvalidWindowError, ValidationError
from .movement_log import MovementLog, MovementRecord
from .contacts import ContactEdge, ContactSet, Direction, trace_contacts
from .contact_trace import ContactTrace, TraceWindow, trace, trace_date_interval
from .shortest_paths import ShortestPaths, shortest_paths
from .network_summary import (
    TraceQuery,
    build_queries,
    trace_many,
    network_summary,
    in_degree,
    out_degree,
    ingoing_contact_chain,
    outgoing_contact_chain,
)

__version__ = '1.0.0'

__all__ = [
    # 配置类
    'TraceConfig',
    # 异常
    'ValidationError',
    'InvalidWindowError',
    'DirectionMismatchError',
    # 核心类
    'MovementLog',
    'MovementRecord',
    'Direction',
    'ContactEdge',
    'ContactSet',
    'ContactTrace',
    'TraceWindow',
    'TraceQuery',
    'ShortestPaths',
    # 函数
    'trace_contacts',
    'trace',
    'trace_date_interval',
    'shortest_paths',
    'build_queries',
    'trace_many',
    'network_summary',
    'in_degree',
    'out_degree',
    'ingoing_contact_chain',
    'outgoing_contact_chain',
]
