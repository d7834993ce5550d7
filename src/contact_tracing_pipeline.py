# -*- coding: utf-8 -*-
"""
Main Pipeline for Contact Tracing Analysis

This script runs contact tracing on a movement dataset for a set of root
locations and exports the network parameters used for forward and backward
contact tracing.

Core Pipeline Steps:
=================
1. Load Movements
   - Read movement records (CSV or Parquet) and build the indexed MovementLog
   - Validation errors abort the pipeline before any tracing

2. Contact Tracing
   - Trace every root in both directions over the observation window
   - Roots are traced in parallel when num_processes > 1

3. Network Summary
   - inDegree, outDegree, ingoingContactChain, outgoingContactChain
   - Min/max/mean shortest path distance per direction

4. Shortest Paths and Contacts
   - Per-location shortest path table
   - All traced movements with their distance from the root

Data Flow:
==========
Movement File
    ↓
[Step 1] Load Movements → MovementLog
    ↓
[Step 2] Contact Tracing → ContactTrace per root
    ↓
[Step 3] Network Summary → {output_dir}/network_summary.csv
    ↓
[Step 4] Shortest Paths and Contacts → {output_dir}/shortest_paths.csv, {output_dir}/contacts.csv
"""

import logging
import multiprocessing as mp
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional

import polars as pl

from contact_trace_core import (
    ContactTrace,
    MovementLog,
    TraceConfig,
    build_queries,
    network_summary,
    shortest_paths,
    trace_many,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """
    Pipeline Configuration Parameter Class

    Attributes:
        movements_file (str): Movement records, .csv or .parquet
        output_dir (str): Directory receiving the result tables
        t_end (str): Last date of the observation window (YYYY-MM-DD)
        days (int): Number of days before t_end included in the window
        roots (Optional[List[str]]): Roots to trace, default all locations in the movements
        num_processes (int): Number of parallel processes, default 1
        trace (TraceConfig): Column mapping and tracing options

    Usage Example:
        >>> config = PipelineConfig(
        ...     movements_file='data/transfers.csv',
        ...     output_dir='data/contact_tracing',
        ...     t_end='2005-10-31',
        ...     days=90,
        ...     roots=['2645'],
        ... )
    """
    movements_file: str
    output_dir: str
    t_end: str
    days: int
    roots: Optional[List[str]] = None
    num_processes: int = 1
    trace: TraceConfig = field(default_factory=TraceConfig)

    def __post_init__(self):
        self.trace = replace(self.trace, num_processes=self.num_processes, progress=True)


class ContactTracingPipeline:
    """
    Contact tracing pipeline

    Usage Example:
        >>> pipeline = ContactTracingPipeline(config)
        >>> results = pipeline.run_full_pipeline()
    """

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.output_dir = Path(config.output_dir)
        self.log: Optional[MovementLog] = None
        self.traces: List[ContactTrace] = []

    def step1_load_movements(self) -> dict:
        logger.info("Step 1: Load movements")

        path = Path(self.config.movements_file)
        if path.suffix == '.parquet':
            df = pl.read_parquet(path)
        else:
            # Location ids are labels, keep leading zeros
            header = pl.read_csv(path, n_rows=0).columns
            id_columns = [col for col in (self.config.trace.source_column, self.config.trace.destination_column)
                          if col in header]
            df = pl.read_csv(path, try_parse_dates=False,
                             schema_overrides={col: pl.Utf8 for col in id_columns})

        self.log = MovementLog(df, self.config.trace)
        date_range = self.log.date_range()
        logger.info(f"Loaded {len(self.log)} movements, {len(self.log.locations())} locations, dates {date_range}")

        return {
            "step": "load_movements",
            "movements": len(self.log),
            "locations": len(self.log.locations()),
        }

    def step2_trace_contacts(self) -> dict:
        logger.info("Step 2: Contact tracing")

        roots = self.config.roots or self.log.locations()
        queries = build_queries(roots, t_end=self.config.t_end, days=self.config.days,
                                date_format=self.config.trace.date_format)
        self.traces = trace_many(self.log, queries, self.config.trace)

        return {
            "step": "trace_contacts",
            "roots": len(self.traces),
            "empty_traces": sum(1 for ct in self.traces if ct.ingoing.is_empty and ct.outgoing.is_empty),
        }

    def step3_network_summary(self) -> dict:
        logger.info("Step 3: Network summary")

        summary = network_summary(self.traces, config=self.config.trace)
        output_file = self.output_dir / "network_summary.csv"
        summary.write_csv(output_file)

        return {
            "step": "network_summary",
            "rows": len(summary),
            "output_file": str(output_file),
        }

    def step4_shortest_paths(self) -> dict:
        logger.info("Step 4: Shortest paths and contacts")

        paths = shortest_paths(self.traces, exclude_root=self.config.trace.exclude_root)
        paths_file = self.output_dir / "shortest_paths.csv"
        paths.write_csv(paths_file)

        if self.traces:
            contacts = pl.concat([ct.to_frame() for ct in self.traces])
        else:
            contacts = pl.DataFrame()
        contacts_file = self.output_dir / "contacts.csv"
        contacts.write_csv(contacts_file)

        return {
            "step": "shortest_paths",
            "locations": len(paths),
            "contacts": len(contacts),
        }

    def run_full_pipeline(self) -> dict:
        logger.info("Starting contact tracing pipeline")
        self.output_dir.mkdir(parents=True, exist_ok=True)

        results = {}
        results["step1"] = self.step1_load_movements()
        results["step2"] = self.step2_trace_contacts()
        results["step3"] = self.step3_network_summary()
        results["step4"] = self.step4_shortest_paths()

        logger.info(f"Pipeline processing completed, results: {self.output_dir}")
        return results


def main():
    """
    Main function entry point

    Notes:
        - Recommended to use 'spawn' startup when num_processes > 1
    """
    mp.set_start_method('spawn', force=True)

    config = PipelineConfig(
        movements_file="data/transfers.csv",
        output_dir="data/contact_tracing",
        t_end="2005-10-31",
        days=90,
        roots=None,             # All locations
        num_processes=6,        # Number of parallel processes
    )

    pipeline = ContactTracingPipeline(config)
    results = pipeline.run_full_pipeline()

    for step, result in results.items():
        logger.info(f"{step}: {result}")


if __name__ == "__main__":
    main()
