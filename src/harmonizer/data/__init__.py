"""Data layer for reading merger runs and writing harmonic runs.

This package provides:
- Unified event abstractions for both merger versions
- Run path construction and range scanning
- Merger version detection
- A streaming reader over a run range
- A size-bounded harmonic writer
- Scaler aggregation
"""

from harmonizer.data.abstractions import (
    RunRange,
    GetEvent,
    FribEvent,
    MergerEvent,
    ScanSummary,
)
from harmonizer.data.run_paths import construct_run_path, iter_existing_runs
from harmonizer.data.versions import MergerVersion, detect_version, read_event_bounds
from harmonizer.data.scan import get_total_merger_bytes, get_total_merger_events, scan
from harmonizer.data.merger_reader import MergerReader, ReaderCursor
from harmonizer.data.harmonic_writer import HarmonicWriter
from harmonizer.data.scalers import ScalerTable, process_scalers

__all__ = [
    # Abstractions
    "RunRange",
    "GetEvent",
    "FribEvent",
    "MergerEvent",
    "ScanSummary",
    # Run paths
    "construct_run_path",
    "iter_existing_runs",
    # Versions
    "MergerVersion",
    "detect_version",
    "read_event_bounds",
    # Scanning
    "get_total_merger_bytes",
    "get_total_merger_events",
    "scan",
    # Reader / writer
    "MergerReader",
    "ReaderCursor",
    "HarmonicWriter",
    # Scalers
    "ScalerTable",
    "process_scalers",
]
