"""Implementation of an attpc_merger reader.

The reader walks an inclusive run range and produces one continuous stream of
MergerEvents, in run order and then event order within a run. Runs missing
from disk are skipped. Each run file is classified independently, so a range
may mix merger versions.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

import h5py
import numpy as np

from harmonizer.constants import (
    EVENTS_GROUP,
    FRIB_COINCIDENCE_DATASET,
    FRIB_PHYSICS_GROUP,
    FRIB_TRACE_DATASET,
    GET_TRACES_DATASET,
    LEGACY_FRIB_EVENT_GROUP,
    LEGACY_FRIB_GROUP,
    LEGACY_GET_GROUP,
)
from harmonizer.data.abstractions import FribEvent, GetEvent, MergerEvent
from harmonizer.data.run_paths import construct_run_path
from harmonizer.data.versions import MergerVersion, detect_version, read_event_bounds
from harmonizer.errors import RunNotFoundError, SchemaError

logger = logging.getLogger(__name__)


@dataclass
class ReaderCursor:
    """Position of a MergerReader within its run range.

    Attributes:
        run: Run number of the currently open file
        max_run: Last run number of the range (inclusive)
        event: Next event to read from the current run
        end: One past the last event of the current run
    """

    run: int
    max_run: int
    event: int = 0
    end: int = 0

    @property
    def run_exhausted(self) -> bool:
        """Return True if every event of the current run has been read."""
        return self.event >= self.end

    def advance_run(self, merger_path: Path) -> Optional[Path]:
        """Move to the next run in range that exists on disk.

        The event bounds are left untouched; the caller resets them once the
        new file has been classified.

        Args:
            merger_path: Directory holding the merger run files

        Returns:
            Path of the next run file, or None if the range is exhausted
        """
        while self.run < self.max_run:
            self.run += 1
            path = construct_run_path(merger_path, self.run)
            if path.exists():
                return path
            logger.debug(f"Run {self.run} not found, skipping")
        self.run = self.max_run + 1
        return None

    def reset(self, first: int, end: int) -> None:
        """Start reading a new run at ``first``, stopping before ``end``."""
        self.event = first
        self.end = end


def _require(group: h5py.Group, name: str) -> Union[h5py.Group, h5py.Dataset]:
    """Return a member that must exist once its payload has been found."""
    try:
        return group[name]
    except KeyError as e:
        raise SchemaError(f"Missing required member '{name}' in {group.name}") from e


def _attr(obj: Union[h5py.Group, h5py.Dataset], name: str) -> int:
    """Return a required integer attribute."""
    try:
        return int(obj.attrs[name])
    except KeyError as e:
        raise SchemaError(f"Missing required attribute '{name}' on {obj.name}") from e


class MergerReader:
    """Sequential reader over a range of attpc_merger runs.

    Capable of determining which version of the merger produced each run and
    parsing it appropriately.

    Usage:
        with MergerReader(merger_path, min_run, max_run) as reader:
            for event in reader:
                writer.write(event)
    """

    def __init__(
        self,
        merger_path: Union[str, Path],
        min_run: int,
        max_run: int,
    ) -> None:
        """Create a new reader. The first run is opened and initialized.

        Args:
            merger_path: Directory holding the merger run files
            min_run: First run number (inclusive), must exist on disk
            max_run: Last run number (inclusive)

        Raises:
            RunNotFoundError: If the first run does not exist
            SchemaError: If the first run has an unrecognized layout
        """
        self._merger_path = Path(merger_path)
        self._cursor = ReaderCursor(run=min_run, max_run=max_run)
        self._file: Optional[h5py.File] = None
        self._version: Optional[MergerVersion] = None

        first_path = construct_run_path(self._merger_path, min_run)
        if not first_path.exists():
            raise RunNotFoundError(
                f"First run of the range does not exist: {first_path}"
            )
        self._init_file(first_path)

    @classmethod
    def open(
        cls,
        merger_path: Union[str, Path],
        min_run: int,
        max_run: int,
    ) -> "MergerReader":
        """Alias for the constructor."""
        return cls(merger_path, min_run, max_run)

    @property
    def cursor(self) -> ReaderCursor:
        """Return the reader's position."""
        return self._cursor

    @property
    def current_run(self) -> int:
        """Return the run number being read."""
        return self._cursor.run

    @property
    def version(self) -> Optional[MergerVersion]:
        """Return the merger version of the current run (None once closed)."""
        return self._version

    def read_event(self) -> Optional[MergerEvent]:
        """Read the next event from the run set.

        If the currently open run is finished, the next run that exists within
        the range is opened. If there is no more data to be read, returns None.

        Returns:
            The next MergerEvent, or None at the end of the range

        Raises:
            SchemaError: If the file layout is broken
        """
        while self._cursor.run_exhausted:
            next_path = self._cursor.advance_run(self._merger_path)
            if next_path is None:
                self.close()
                return None
            self._init_file(next_path)

        if self._version is MergerVersion.V020:
            event = self._read_event_020(self._cursor.event)
        else:
            event = self._read_event_010(self._cursor.event)

        self._cursor.event += 1
        return event

    def __iter__(self) -> Iterator[MergerEvent]:
        while True:
            event = self.read_event()
            if event is None:
                return
            yield event

    def close(self) -> None:
        """Close the currently open run file."""
        if self._file is not None:
            self._file.close()
            self._file = None
            self._version = None

    def __enter__(self) -> "MergerReader":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _init_file(self, path: Path) -> None:
        """Open a run file and update our state from its declared bounds."""
        self.close()
        self._file = h5py.File(path, "r")
        try:
            self._version = detect_version(self._file)
            first, end = read_event_bounds(self._file, self._version)
        except SchemaError:
            self.close()
            raise
        self._cursor.reset(first, end)
        logger.info(
            f"Reading run {self._cursor.run} (merger {self._version.value}, "
            f"{end - first} events)"
        )

    def _read_event_020(self, event_number: int) -> MergerEvent:
        """Read an event from the modern merger format."""
        event_name = f"event_{event_number}"
        try:
            event_group = self._file[EVENTS_GROUP][event_name]
        except KeyError as e:
            raise SchemaError(
                f"Run {self._cursor.run} declares event {event_number} but has no "
                f"'{EVENTS_GROUP}/{event_name}' group"
            ) from e

        maybe_get = None
        maybe_frib = None
        if GET_TRACES_DATASET in event_group:
            get_data = event_group[GET_TRACES_DATASET]
            maybe_get = GetEvent(
                traces=np.asarray(get_data[()], dtype=np.int16),
                id=_attr(get_data, "id"),
                timestamp=_attr(get_data, "timestamp"),
                timestamp_other=_attr(get_data, "timestamp_other"),
            )
        if FRIB_PHYSICS_GROUP in event_group:
            frib_group = event_group[FRIB_PHYSICS_GROUP]
            frib_977 = _require(frib_group, FRIB_COINCIDENCE_DATASET)
            frib_1903 = _require(frib_group, FRIB_TRACE_DATASET)
            maybe_frib = FribEvent(
                traces=np.asarray(frib_1903[()], dtype=np.uint16),
                coincidence=np.asarray(frib_977[()], dtype=np.uint16),
                event=_attr(frib_group, "event"),
                timestamp=_attr(frib_group, "timestamp"),
            )

        return MergerEvent(
            run_number=self._cursor.run,
            event=event_number,
            get=maybe_get,
            frib=maybe_frib,
        )

    def _read_event_010(self, event_number: int) -> MergerEvent:
        """Read an event from the 0.1.0 merger format."""
        maybe_get = None
        maybe_frib = None

        get_group = self._file.get(LEGACY_GET_GROUP)
        if get_group is not None and f"evt{event_number}_data" in get_group:
            get_data = get_group[f"evt{event_number}_data"]
            get_header = np.asarray(
                _require(get_group, f"evt{event_number}_header")[()], dtype=np.float64
            )
            if get_header.shape[0] < 3:
                raise SchemaError(
                    f"GET header for event {event_number} of run {self._cursor.run} "
                    f"has {get_header.shape[0]} elements, expected at least 3"
                )
            maybe_get = GetEvent(
                traces=np.asarray(get_data[()], dtype=np.int16),
                id=int(get_header[0]),
                timestamp=int(get_header[1]),
                timestamp_other=int(get_header[2]),
            )

        frib_evt_group = self._file.get(f"{LEGACY_FRIB_GROUP}/{LEGACY_FRIB_EVENT_GROUP}")
        if frib_evt_group is not None and f"evt{event_number}_1903" in frib_evt_group:
            frib_1903_data = frib_evt_group[f"evt{event_number}_1903"]
            frib_977_data = _require(frib_evt_group, f"evt{event_number}_977")
            frib_header = np.asarray(
                _require(frib_evt_group, f"evt{event_number}_header")[()], dtype=np.uint32
            )
            if frib_header.shape[0] < 2:
                raise SchemaError(
                    f"FRIB header for event {event_number} of run {self._cursor.run} "
                    f"has {frib_header.shape[0]} elements, expected at least 2"
                )
            maybe_frib = FribEvent(
                traces=np.asarray(frib_1903_data[()], dtype=np.uint16),
                coincidence=np.asarray(frib_977_data[()], dtype=np.uint16),
                event=int(frib_header[0]),
                timestamp=int(frib_header[1]),
            )

        return MergerEvent(
            run_number=self._cursor.run,
            event=event_number,
            get=maybe_get,
            frib=maybe_frib,
        )
