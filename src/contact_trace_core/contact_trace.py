# -*- coding: utf-8 -*-
"""
Contact Trace Module

Pairs the ingoing and outgoing contact sets of one root. The two directions
may use independent date windows, or share the window derived from an end
date and a number of lookback days.

Usage Examples:
===============
>>> log = MovementLog(movements)
>>> # Both windows are [2005-08-02, 2005-10-31]
>>> ct = trace(log, root=2645, t_end='2005-10-31', days=90)
>>> ct.outgoing.outgoing_contact_chain()
>>> # Independent windows
>>> ct = trace(log, root=2645,
...            in_begin='2005-08-01', in_end='2005-10-31',
...            out_begin='2005-09-01', out_end='2005-10-31')
"""

import numbers
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

import polars as pl

from .config import TraceConfig
from .contacts import CONTACT_SCHEMA, ContactSet, Direction, trace_contacts
from .exceptions import InvalidWindowError, ValidationError
from .movement_log import MovementLog, normalize_location, parse_date


DATE_INTERVAL_SCHEMA = {
    'root': pl.Utf8,
    'inBegin': pl.Date,
    'inEnd': pl.Date,
    'inDays': pl.Int64,
    'outBegin': pl.Date,
    'outEnd': pl.Date,
    'outDays': pl.Int64,
}

CONTACT_TABLE_COLUMNS = [
    'root', 'direction',
    'inBegin', 'inEnd', 'inDays', 'outBegin', 'outEnd', 'outDays',
    *[col for col in CONTACT_SCHEMA if col not in ('root', 'direction')],
]


@dataclass(frozen=True)
class TraceWindow:
    """Closed date interval [begin, end] used for tracing one direction"""
    begin: date
    end: date

    def __post_init__(self):
        if self.begin > self.end:
            raise InvalidWindowError(f"Window start {self.begin} is after window end {self.end}")

    @property
    def days(self) -> int:
        return (self.end - self.begin).days

    @classmethod
    def parse(cls, begin: Any, end: Any, name: str = 'window',
              date_format: str = '%Y-%m-%d') -> 'TraceWindow':
        return cls(
            parse_date(begin, f"{name} begin", date_format),
            parse_date(end, f"{name} end", date_format),
        )

    @classmethod
    def from_end_date(cls, t_end: Any, days: Any, date_format: str = '%Y-%m-%d') -> 'TraceWindow':
        """Window covering the days before t_end, i.e. [t_end - days, t_end]"""
        if isinstance(days, bool) or not isinstance(days, numbers.Integral):
            raise ValidationError(f"days must be an integer, got {days!r}")
        days = int(days)
        if days < 0:
            raise InvalidWindowError(f"days must be non-negative, got {days}")
        end = parse_date(t_end, 'tEnd', date_format)
        return cls(end - timedelta(days=days), end)


def resolve_windows(t_end: Any = None, days: Any = None,
                    in_begin: Any = None, in_end: Any = None,
                    out_begin: Any = None, out_end: Any = None,
                    date_format: str = '%Y-%m-%d') -> Dict[Direction, TraceWindow]:
    """
    Build the ingoing and outgoing windows from either (t_end, days) or the four
    explicit boundaries

    Raises:
        ValidationError: Parameters missing or both styles mixed
        InvalidWindowError: Negative days or a window that starts after it ends
    """
    explicit = (in_begin, in_end, out_begin, out_end)
    use_end_date = t_end is not None or days is not None

    if use_end_date:
        if any(value is not None for value in explicit):
            raise ValidationError("Use either tEnd and days or inBegin, inEnd, outBegin and outEnd, not both")
        if t_end is None or days is None:
            raise ValidationError("Both tEnd and days are required")
        window = TraceWindow.from_end_date(t_end, days, date_format)
        return {Direction.IN: window, Direction.OUT: window}

    if any(value is None for value in explicit):
        raise ValidationError("Missing parameters: inBegin, inEnd, outBegin and outEnd are required without tEnd and days")
    return {
        Direction.IN: TraceWindow.parse(in_begin, in_end, 'inBegin/inEnd', date_format),
        Direction.OUT: TraceWindow.parse(out_begin, out_end, 'outBegin/outEnd', date_format),
    }


@dataclass(frozen=True)
class ContactTrace:
    """
    Result of one contact tracing query

    Attributes:
        root (str): Root location
        ingoing (ContactSet): Backward contacts, direction IN
        outgoing (ContactSet): Forward contacts, direction OUT
    """
    root: str
    ingoing: ContactSet
    outgoing: ContactSet

    def __post_init__(self):
        if self.ingoing.direction is not Direction.IN:
            raise ValidationError("ingoing contacts must be traced with Direction.IN")
        if self.outgoing.direction is not Direction.OUT:
            raise ValidationError("outgoing contacts must be traced with Direction.OUT")

    @property
    def in_window(self) -> TraceWindow:
        return TraceWindow(self.ingoing.window_start, self.ingoing.window_end)

    @property
    def out_window(self) -> TraceWindow:
        return TraceWindow(self.outgoing.window_start, self.outgoing.window_end)

    def contact_set(self, direction: Direction) -> ContactSet:
        return self.ingoing if direction is Direction.IN else self.outgoing

    def date_interval(self) -> Dict[str, Any]:
        """Root and the two tracing windows as one row"""
        return {
            'root': self.root,
            'inBegin': self.ingoing.window_start,
            'inEnd': self.ingoing.window_end,
            'inDays': self.ingoing.days,
            'outBegin': self.outgoing.window_start,
            'outEnd': self.outgoing.window_end,
            'outDays': self.outgoing.days,
        }

    def to_frame(self) -> pl.DataFrame:
        """Ingoing then outgoing contacts with the tracing windows attached"""
        interval = {key: value for key, value in self.date_interval().items() if key != 'root'}
        frames = [self.ingoing.to_frame(), self.outgoing.to_frame()]
        return pl.concat(frames).with_columns([
            pl.lit(value, dtype=DATE_INTERVAL_SCHEMA[key]).alias(key)
            for key, value in interval.items()
        ]).select(CONTACT_TABLE_COLUMNS)


def trace(log: MovementLog, root: Any, t_end: Any = None, days: Any = None,
          in_begin: Any = None, in_end: Any = None,
          out_begin: Any = None, out_end: Any = None,
          config: Optional[TraceConfig] = None) -> ContactTrace:
    """
    Contact tracing of one root in both directions

    Parameters:
        log (MovementLog): Indexed movement records
        root: Root location id
        t_end, days: Last date and lookback days shared by both windows
        in_begin, in_end, out_begin, out_end: Independent windows per direction
        config (Optional[TraceConfig]): Date format and depth limit

    Returns:
        ContactTrace
    """
    config = config or TraceConfig()
    windows = resolve_windows(t_end, days, in_begin, in_end, out_begin, out_end, config.date_format)
    return trace_windows(log, root, windows[Direction.IN], windows[Direction.OUT], config)


def trace_windows(log: MovementLog, root: Any, in_window: TraceWindow, out_window: TraceWindow,
                  config: Optional[TraceConfig] = None) -> ContactTrace:
    config = config or TraceConfig()
    root = normalize_location(root)
    return ContactTrace(
        root=root,
        ingoing=trace_contacts(log, root, Direction.IN, in_window.begin, in_window.end, config.max_distance),
        outgoing=trace_contacts(log, root, Direction.OUT, out_window.begin, out_window.end, config.max_distance),
    )


def as_trace_list(traces: Union[ContactTrace, Iterable[ContactTrace]]) -> List[ContactTrace]:
    """Accept one ContactTrace or a list of them; anything else is rejected"""
    if isinstance(traces, ContactTrace):
        return [traces]
    items = list(traces)
    for item in items:
        if not isinstance(item, ContactTrace):
            raise ValidationError(f"Expected ContactTrace objects, got {type(item).__name__}")
    return items


def trace_date_interval(traces: Union[ContactTrace, Iterable[ContactTrace]]) -> pl.DataFrame:
    """Tracing windows of one or many ContactTrace objects, one row per trace"""
    rows = [ct.date_interval() for ct in as_trace_list(traces)]
    return pl.DataFrame(rows, schema=DATE_INTERVAL_SCHEMA)
