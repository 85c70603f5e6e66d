"""Mapping between run numbers and run files."""

from pathlib import Path
from typing import Iterator, Union

from harmonizer.constants import RUN_FILE_TEMPLATE


def construct_run_path(path: Union[str, Path], run_number: int) -> Path:
    """Construct the formatted run path from a parent path and run number.

    Args:
        path: Directory holding the run files
        run_number: Run number

    Returns:
        Path of the form ``<path>/run_XXXX.h5``
    """
    return Path(path) / RUN_FILE_TEMPLATE.format(run=run_number)


def iter_existing_runs(
    path: Union[str, Path],
    min_run: int,
    max_run: int,
) -> Iterator[int]:
    """Yield the run numbers in [min_run, max_run] whose file exists.

    Args:
        path: Directory holding the run files
        min_run: First run number (inclusive)
        max_run: Last run number (inclusive)
    """
    for run in range(min_run, max_run + 1):
        if construct_run_path(path, run).exists():
            yield run
