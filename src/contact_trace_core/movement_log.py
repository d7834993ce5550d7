# -*- coding: utf-8 -*-
"""
Movement Log Module

Validated, indexed and immutable view over raw movement records. It is the only
input of the contact tracing engine and is built once per analysis, then shared
read-only by every contact tracing query.

Data Flow:
==========
Input: Movement records (polars DataFrame, pandas DataFrame or list of dicts)
  ├─ Required fields: source, destination, t (movement date)
  └─ Optional fields: id (entity id), n (number of entities), category

Processing Steps:
  1. Rename columns through the TraceConfig field mapping
  2. Validate required fields, parse dates, check counts
  3. Normalize location ids to strings
  4. Index records by source and by destination, ascending by date

Output: MovementLog with windowed lookups
  ├─ outgoing(location, begin, end): records leaving location within [begin, end]
  └─ ingoing(location, begin, end): records arriving at location within [begin, end]

Usage Examples:
===============
>>> log = MovementLog([
...     {'source': 'A', 'destination': 'B', 't': '2024-01-01'},
...     {'source': 'B', 'destination': 'C', 't': '2024-01-02'},
... ])
>>> [r.destination for r in log.outgoing('A', date(2024, 1, 1), date(2024, 1, 31))]
['B']
"""

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import polars as pl

from .config import TraceConfig
from .exceptions import InvalidWindowError, ValidationError

logger = logging.getLogger(__name__)


MOVEMENT_SCHEMA = {
    'index': pl.Int64,
    'source': pl.Utf8,
    'destination': pl.Utf8,
    't': pl.Date,
    'id': pl.Utf8,
    'n': pl.Float64,
    'category': pl.Utf8,
}


@dataclass(frozen=True)
class MovementRecord:
    """
    Single validated movement of entities between two locations

    Attributes:
        index (int): Position of the record in the validated log
        source (str): Location the entities left
        destination (str): Location the entities arrived at
        t (date): Movement date
        id (Optional[str]): Entity identifier
        n (Optional[float]): Number of entities moved
        category (Optional[str]): Entity category
    """
    index: int
    source: str
    destination: str
    t: date
    id: Optional[str] = None
    n: Optional[float] = None
    category: Optional[str] = None


def parse_date(value: Any, name: str = 'date', date_format: str = '%Y-%m-%d') -> date:
    """Convert a date, datetime or formatted string to a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value, date_format).date()
        except ValueError as e:
            raise ValidationError(f"Unable to parse {name} '{value}' with format '{date_format}'") from e
    raise ValidationError(f"{name} must be a date or a string, got {type(value).__name__}")


def normalize_location(value: Any, name: str = 'root') -> str:
    """Location ids are compared as strings, so 2645 and '2645' refer to the same holding"""
    if value is None:
        raise ValidationError(f"{name} is missing")
    return str(value)


def _to_polars(movements: Any) -> pl.DataFrame:
    if isinstance(movements, pl.DataFrame):
        return movements
    try:
        if isinstance(movements, pd.DataFrame):
            # Replace NaN/NaT with None so polars infers nullable columns
            cleaned = movements.astype(object).where(movements.notna(), None)
            return pl.DataFrame({str(col): cleaned[col].tolist() for col in cleaned.columns})
        if isinstance(movements, (list, tuple)):
            if not movements:
                raise ValidationError("movements must contain at least the required columns")
            # Scan every record, keys may first appear late in the list
            return pl.DataFrame(list(movements), infer_schema_length=None)
    except (pl.exceptions.PolarsError, TypeError) as e:
        raise ValidationError(f"Unable to read movement records: {e}") from e
    raise ValidationError(
        f"movements must be a polars DataFrame, pandas DataFrame or list of dicts, got {type(movements).__name__}"
    )


def _date_expression(df: pl.DataFrame, column: str, date_format: str) -> pl.Expr:
    dtype = df.schema[column]
    if dtype == pl.Date:
        return pl.col(column)
    if dtype == pl.Datetime:
        return pl.col(column).dt.date()
    if dtype == pl.Utf8:
        return pl.col(column).str.strptime(pl.Date, date_format, strict=False)
    raise ValidationError(f"Column '{column}' must hold dates or date strings, got {dtype}")


def validate_movements(movements: Any, config: Optional[TraceConfig] = None) -> pl.DataFrame:
    """
    Validate raw movement records and return them in canonical form

    Parameters:
        movements: polars DataFrame, pandas DataFrame or list of dicts
        config (Optional[TraceConfig]): Column mapping and date format

    Returns:
        pl.DataFrame: Columns index, source, destination, t, id, n, category

    Raises:
        ValidationError: Missing columns, missing values, unparseable dates,
            non-numeric or negative counts
    """
    config = config or TraceConfig()
    df = _to_polars(movements)

    missing = [col for col in config.required_columns.values() if col not in df.columns]
    if missing:
        raise ValidationError(f"Missing required movement columns: {missing}")

    for key, col in config.required_columns.items():
        if df[col].null_count() > 0:
            raise ValidationError(f"Column '{col}' ({key}) contains missing values")

    time_col = config.time_column
    t_expr = _date_expression(df, time_col, config.date_format).alias('t')
    parsed_t = df.select(t_expr)['t']
    if parsed_t.null_count() > 0:
        bad = df[time_col].filter(parsed_t.is_null()).head(3).to_list()
        raise ValidationError(f"Unable to parse dates in column '{time_col}': {bad}")

    columns = [
        pl.col(config.source_column).cast(pl.Utf8).alias('source'),
        pl.col(config.destination_column).cast(pl.Utf8).alias('destination'),
        t_expr,
    ]

    id_col, n_col, category_col = config.id_column, config.count_column, config.category_column
    if id_col in df.columns:
        columns.append(pl.col(id_col).cast(pl.Utf8).alias('id'))
    else:
        columns.append(pl.lit(None, dtype=pl.Utf8).alias('id'))

    if n_col in df.columns:
        n_dtype = df.schema[n_col]
        if not (n_dtype.is_numeric() or n_dtype == pl.Null):
            raise ValidationError(f"Column '{n_col}' (n) must be numeric, got {n_dtype}")
        if (df[n_col].drop_nulls() < 0).any():
            raise ValidationError(f"Column '{n_col}' (n) contains negative counts")
        columns.append(pl.col(n_col).cast(pl.Float64).alias('n'))
    else:
        columns.append(pl.lit(None, dtype=pl.Float64).alias('n'))

    if category_col in df.columns:
        columns.append(pl.col(category_col).cast(pl.Utf8).alias('category'))
    else:
        columns.append(pl.lit(None, dtype=pl.Utf8).alias('category'))

    return (
        df.select(columns)
        .with_row_index('index')
        .with_columns(pl.col('index').cast(pl.Int64))
        .select(list(MOVEMENT_SCHEMA))
    )


class MovementLog:
    """
    Immutable, indexed collection of validated movement records

    Parameters:
        movements: Raw movement records (polars DataFrame, pandas DataFrame or list of dicts)
        config (Optional[TraceConfig]): Column mapping and date format

    Raises:
        ValidationError: When the records fail validation
    """

    def __init__(self, movements: Any, config: Optional[TraceConfig] = None):
        self.config = config or TraceConfig()
        self._frame = validate_movements(movements, self.config)
        self._records: Tuple[MovementRecord, ...] = tuple(
            MovementRecord(*row) for row in self._frame.iter_rows()
        )
        self._by_source = self._build_index('source')
        self._by_destination = self._build_index('destination')
        logger.debug(
            "Indexed %d movements between %d locations",
            len(self._records), len(self.locations()),
        )

    def _build_index(self, key: str) -> Dict[str, Tuple[List[date], List[int]]]:
        """Group record positions per location, ascending by date then by record order"""
        index: Dict[str, Tuple[List[date], List[int]]] = {}
        ordered = self._frame.sort(['t', 'index']).select([key, 't', 'index'])
        for location, t, position in ordered.iter_rows():
            dates, positions = index.setdefault(location, ([], []))
            dates.append(t)
            positions.append(position)
        return index

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"MovementLog(records={len(self)}, locations={len(self.locations())})"

    @property
    def frame(self) -> pl.DataFrame:
        """Validated movements in canonical columns"""
        return self._frame

    @property
    def records(self) -> Tuple[MovementRecord, ...]:
        return self._records

    def locations(self) -> List[str]:
        """Sorted distinct location ids appearing as source or destination"""
        return sorted(set(self._by_source) | set(self._by_destination))

    def date_range(self) -> Optional[Tuple[date, date]]:
        if not self._records:
            return None
        return self._frame['t'].min(), self._frame['t'].max()

    def _lookup(self, index: Dict[str, Tuple[List[date], List[int]]],
                location: Any, begin: date, end: date) -> List[MovementRecord]:
        if begin > end:
            raise InvalidWindowError(f"Window start {begin} is after window end {end}")
        entry = index.get(normalize_location(location, 'location'))
        if entry is None:
            return []
        dates, positions = entry
        lo = bisect_left(dates, begin)
        hi = bisect_right(dates, end)
        return [self._records[i] for i in positions[lo:hi]]

    def outgoing(self, location: Any, begin: date, end: date) -> List[MovementRecord]:
        """Records with source == location and begin <= t <= end, ascending by t"""
        return self._lookup(self._by_source, location, begin, end)

    def ingoing(self, location: Any, begin: date, end: date) -> List[MovementRecord]:
        """Records with destination == location and begin <= t <= end, ascending by t"""
        return self._lookup(self._by_destination, location, begin, end)


def as_movement_log(movements: Any, config: Optional[TraceConfig] = None) -> MovementLog:
    """Reuse an existing MovementLog or build one from raw records"""
    if isinstance(movements, MovementLog):
        return movements
    return MovementLog(movements, config)
