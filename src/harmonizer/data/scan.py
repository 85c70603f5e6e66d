"""Cumulative statistics about the set of runs to be harmonized.

Runs missing from disk are skipped. Once a run file is opened, a malformed
layout is an error.
"""

import logging
from pathlib import Path
from typing import Union

import h5py

from harmonizer.data.abstractions import ScanSummary
from harmonizer.data.run_paths import construct_run_path, iter_existing_runs
from harmonizer.data.versions import detect_version, read_event_bounds

logger = logging.getLogger(__name__)


def get_total_merger_bytes(
    merger_path: Union[str, Path],
    min_run: int,
    max_run: int,
) -> int:
    """Traverse the set of runs and see how much data there is (in bytes).

    Args:
        merger_path: Directory holding the merger run files
        min_run: First run number (inclusive)
        max_run: Last run number (inclusive)

    Returns:
        Total size on disk of all runs found
    """
    total = 0
    for run in iter_existing_runs(merger_path, min_run, max_run):
        total += construct_run_path(merger_path, run).stat().st_size
    return total


def get_run_event_count(run_path: Path) -> int:
    """Return the number of events a single merger run declares."""
    with h5py.File(run_path, "r") as merger_file:
        version = detect_version(merger_file)
        first, end = read_event_bounds(merger_file, version)
    return end - first


def get_total_merger_events(
    merger_path: Union[str, Path],
    min_run: int,
    max_run: int,
) -> int:
    """Traverse the set of runs and see how many events there are.

    Args:
        merger_path: Directory holding the merger run files
        min_run: First run number (inclusive)
        max_run: Last run number (inclusive)

    Returns:
        Total number of events declared by all runs found

    Raises:
        SchemaError: If a run file has an unrecognized layout or missing bounds
    """
    total = 0
    for run in iter_existing_runs(merger_path, min_run, max_run):
        count = get_run_event_count(construct_run_path(merger_path, run))
        logger.debug(f"Run {run} declares {count} events")
        total += count
    return total


def scan(merger_path: Union[str, Path], min_run: int, max_run: int) -> ScanSummary:
    """Collect bytes, events, and run counts for a run range in one pass.

    Args:
        merger_path: Directory holding the merger run files
        min_run: First run number (inclusive)
        max_run: Last run number (inclusive)

    Returns:
        ScanSummary for the range
    """
    total_bytes = 0
    total_events = 0
    runs_found = 0
    for run in iter_existing_runs(merger_path, min_run, max_run):
        run_path = construct_run_path(merger_path, run)
        total_bytes += run_path.stat().st_size
        total_events += get_run_event_count(run_path)
        runs_found += 1

    logger.info(
        f"Scanned runs {min_run}-{max_run}: {runs_found} found, "
        f"{total_events} events, {total_bytes} bytes"
    )
    return ScanSummary(
        total_bytes=total_bytes,
        total_events=total_events,
        runs_found=runs_found,
    )
