"""Functions for processing the scalers from a run set.

All scalers from all runs are combined into a single table and written to a
parquet file in the harmonic directory. This is a second, independent pass over
the run range; scalers have no defined ordering relative to events.
"""

import logging
from pathlib import Path
from typing import Dict, List, Union

import h5py
import numpy as np
import pyarrow as pa
import pyarrow.parquet as pq

from harmonizer.constants import (
    LEGACY_FRIB_GROUP,
    LEGACY_FRIB_SCALER_GROUP,
    MAX_EVENT_ATTR,
    MIN_EVENT_ATTR,
    SCALER_CHANNELS,
    SCALER_COLUMNS,
    SCALER_FILE_NAME,
    SCALERS_GROUP,
)
from harmonizer.data.run_paths import construct_run_path, iter_existing_runs
from harmonizer.data.versions import MergerVersion, detect_version
from harmonizer.errors import SchemaError

logger = logging.getLogger(__name__)


class ScalerTable:
    """Column-wise accumulator for scaler records.

    Each row holds the run number, the scaler index within that run, and the
    eleven scaler channels, all as unsigned 32-bit integers.
    """

    def __init__(self) -> None:
        self._columns: Dict[str, List[int]] = {name: [] for name in SCALER_COLUMNS}

    def __len__(self) -> int:
        return len(self._columns[SCALER_COLUMNS[0]])

    @property
    def column_names(self) -> List[str]:
        """Return the column names in order."""
        return list(SCALER_COLUMNS)

    def column(self, name: str) -> List[int]:
        """Return a copy of one column."""
        return list(self._columns[name])

    def append(self, run: int, scaler: int, data: np.ndarray) -> None:
        """Append one scaler record.

        Args:
            run: Merger run number the record came from
            scaler: Index of the record within its run
            data: 1-D record with at least eleven channels

        Raises:
            SchemaError: If the record is too short
        """
        data = np.asarray(data).reshape(-1)
        if data.shape[0] < SCALER_CHANNELS:
            raise SchemaError(
                f"Scaler {scaler} of run {run} has {data.shape[0]} channels, "
                f"expected {SCALER_CHANNELS}"
            )
        row = [run, scaler] + [int(value) for value in data[:SCALER_CHANNELS]]
        limits = np.iinfo(np.uint32)
        for name, value in zip(SCALER_COLUMNS, row):
            if not limits.min <= value <= limits.max:
                raise SchemaError(
                    f"Scaler {scaler} of run {run} has {name}={value}, "
                    f"outside the uint32 range"
                )
        for name, value in zip(SCALER_COLUMNS, row):
            self._columns[name].append(value)

    def to_arrow(self) -> pa.Table:
        """Convert the accumulated records to a pyarrow Table."""
        return pa.table(
            {
                name: pa.array(self._columns[name], type=pa.uint32())
                for name in SCALER_COLUMNS
            }
        )

    def write_parquet(self, path: Union[str, Path]) -> None:
        """Write the table to a parquet file."""
        pq.write_table(self.to_arrow(), str(path))


def read_scalers_010(scalers: ScalerTable, merger_file: h5py.File, run: int) -> int:
    """Read scalers from the 0.1.0 merger format.

    Records are probed from index 0 until the first missing one.

    Returns:
        Number of records read
    """
    try:
        scaler_group = merger_file[LEGACY_FRIB_GROUP][LEGACY_FRIB_SCALER_GROUP]
    except KeyError as e:
        raise SchemaError(
            f"Run {run} (merger 0.1.0) has no "
            f"'{LEGACY_FRIB_GROUP}/{LEGACY_FRIB_SCALER_GROUP}' group"
        ) from e

    scaler = 0
    while f"scaler{scaler}_data" in scaler_group:
        scalers.append(run, scaler, scaler_group[f"scaler{scaler}_data"][()])
        scaler += 1
    return scaler


def read_scalers_020(scalers: ScalerTable, merger_file: h5py.File, run: int) -> int:
    """Read scalers from the modern merger format.

    The declared range is inclusive of ``max_event``. Indices within the range
    that have no record are skipped.

    Returns:
        Number of records read
    """
    try:
        scaler_group = merger_file[SCALERS_GROUP]
        scaler_min = int(scaler_group.attrs[MIN_EVENT_ATTR])
        scaler_max = int(scaler_group.attrs[MAX_EVENT_ATTR])
    except KeyError as e:
        raise SchemaError(
            f"Run {run} (merger 0.2.0) has no scaler bounds: {e}"
        ) from e

    count = 0
    for scaler in range(scaler_min, scaler_max + 1):
        name = f"event_{scaler}"
        if name not in scaler_group:
            continue
        scalers.append(run, scaler, scaler_group[name][()])
        count += 1
    return count


def collect_scalers(
    merger_path: Union[str, Path],
    min_run: int,
    max_run: int,
) -> ScalerTable:
    """Gather the scalers of every run in range into one table.

    Args:
        merger_path: Directory holding the merger run files
        min_run: First run number (inclusive)
        max_run: Last run number (inclusive)

    Returns:
        ScalerTable with one row per scaler record
    """
    scalers = ScalerTable()
    for run in iter_existing_runs(merger_path, min_run, max_run):
        with h5py.File(construct_run_path(merger_path, run), "r") as merger_file:
            version = detect_version(merger_file)
            if version is MergerVersion.V010:
                count = read_scalers_010(scalers, merger_file, run)
            else:
                count = read_scalers_020(scalers, merger_file, run)
        logger.debug(f"Read {count} scalers from run {run}")
    return scalers


def process_scalers(
    merger_path: Union[str, Path],
    harmonic_path: Union[str, Path],
    min_run: int,
    max_run: int,
) -> Path:
    """The main loop of processing scalers.

    Args:
        merger_path: Directory holding the merger run files
        harmonic_path: Directory receiving the scaler table
        min_run: First run number (inclusive)
        max_run: Last run number (inclusive)

    Returns:
        Path of the written parquet file
    """
    scalers = collect_scalers(merger_path, min_run, max_run)
    scaler_path = Path(harmonic_path) / SCALER_FILE_NAME
    scalers.write_parquet(scaler_path)
    logger.info(f"Wrote {len(scalers)} scalers to {scaler_path}")
    return scaler_path
