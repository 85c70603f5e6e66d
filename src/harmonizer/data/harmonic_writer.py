"""Writer for harmonic runs.

Harmonic runs follow the 0.2.0 merger layout with a few changes:

    run_0000.h5
    |---- events - min_event, max_event, version
    |    |---- event_# - orig_run, orig_event
    |    |    |---- get_traces(dset) - id, timestamp, timestamp_other
    |    |    |---- frib_physics - event, timestamp
    |    |    |    |---- 977(dset)
    |    |    |    |---- 1903(dset)

Events are renumbered from 0 in every harmonic run. The original run and event
number are kept as the ``orig_run`` and ``orig_event`` attributes.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import h5py
import numpy as np

from harmonizer import HARMONIZER_VERSION
from harmonizer.constants import (
    EVENTS_GROUP,
    FRIB_COINCIDENCE_DATASET,
    FRIB_PHYSICS_GROUP,
    FRIB_TRACE_DATASET,
    GET_TRACES_DATASET,
    MAX_EVENT_ATTR,
    MIN_EVENT_ATTR,
    ORIG_EVENT_ATTR,
    ORIG_RUN_ATTR,
    VERSION_ATTR,
)
from harmonizer.data.abstractions import MergerEvent
from harmonizer.data.run_paths import construct_run_path

logger = logging.getLogger(__name__)


class HarmonicWriter:
    """Writes a stream of MergerEvents into size-bounded harmonic runs.

    The file size is checked after each complete event, so a harmonic run may
    exceed the threshold by at most one event. The last run is usually smaller.

    Usage:
        writer = HarmonicWriter(harmonic_path, harmonic_size)
        for event in reader:
            writer.write(event)
        writer.close()
    """

    def __init__(self, harmonic_path: Union[str, Path], harmonic_size: int) -> None:
        """Create the writer and the first harmonic run (run_0000).

        Args:
            harmonic_path: Existing directory for the harmonic runs
            harmonic_size: Size threshold of a harmonic run in bytes
        """
        if harmonic_size <= 0:
            raise ValueError(f"harmonic_size must be positive, got {harmonic_size}")

        self._harmonic_path = Path(harmonic_path)
        self._harmonic_size = harmonic_size
        self._current_run = 0
        self._current_event = 0
        self._finished_runs: List[Path] = []
        self._current_path = construct_run_path(self._harmonic_path, self._current_run)
        self._current_file: Optional[h5py.File] = None
        self._open_file()

    @classmethod
    def open(cls, harmonic_path: Union[str, Path], harmonic_size: int) -> "HarmonicWriter":
        """Alias for the constructor."""
        return cls(harmonic_path, harmonic_size)

    @property
    def harmonic_size(self) -> int:
        """Return the size threshold in bytes."""
        return self._harmonic_size

    @property
    def current_run(self) -> int:
        """Return the number of the harmonic run being written."""
        return self._current_run

    @property
    def current_event(self) -> int:
        """Return the number of events written to the current harmonic run."""
        return self._current_event

    @property
    def current_path(self) -> Path:
        """Return the path of the harmonic run being written."""
        return self._current_path

    @property
    def finished_runs(self) -> List[Path]:
        """Return the paths of all finalized harmonic runs, in order."""
        return list(self._finished_runs)

    def write(self, event: MergerEvent) -> None:
        """Append an event to the current harmonic run.

        Rolls over to a new harmonic run once the current one reaches the size
        threshold.

        Args:
            event: Event to write; ownership passes to the writer
        """
        if self._current_file is None:
            raise RuntimeError("Attempted to write to a closed HarmonicWriter")

        event_group = self._current_file[EVENTS_GROUP].create_group(
            f"event_{self._current_event}"
        )
        event_group.attrs.create(ORIG_RUN_ATTR, event.run_number, dtype=np.int32)
        event_group.attrs.create(ORIG_EVENT_ATTR, event.event, dtype=np.uint64)

        if event.get is not None:
            get = event.get
            traces = event_group.create_dataset(GET_TRACES_DATASET, data=get.traces)
            traces.attrs.create("id", get.id, dtype=np.uint32)
            traces.attrs.create("timestamp", get.timestamp, dtype=np.uint64)
            traces.attrs.create("timestamp_other", get.timestamp_other, dtype=np.uint64)

        if event.frib is not None:
            frib = event.frib
            frib_group = event_group.create_group(FRIB_PHYSICS_GROUP)
            frib_group.attrs.create("event", frib.event, dtype=np.uint32)
            frib_group.attrs.create("timestamp", frib.timestamp, dtype=np.uint32)
            frib_group.create_dataset(FRIB_TRACE_DATASET, data=frib.traces)
            frib_group.create_dataset(FRIB_COINCIDENCE_DATASET, data=frib.coincidence)

        self._current_event += 1

        self._current_file.flush()
        if self._current_path.stat().st_size >= self._harmonic_size:
            self._finish_file()
            self._current_event = 0
            self._current_run += 1
            self._current_path = construct_run_path(self._harmonic_path, self._current_run)
            self._open_file()

    def close(self) -> None:
        """Finalize the current harmonic run, whatever its size."""
        if self._current_file is not None:
            self._finish_file()

    def __enter__(self) -> "HarmonicWriter":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def abort(self) -> None:
        """Close the current harmonic run without recording its event count."""
        if self._current_file is not None:
            self._current_file.close()
            self._current_file = None
            logger.warning(
                f"Harmonic run {self._current_path.name} closed without being finished"
            )

    def _open_file(self) -> None:
        """Create the current harmonic run and write its initial metadata."""
        self._current_file = h5py.File(self._current_path, "w")
        events_group = self._current_file.create_group(EVENTS_GROUP)
        events_group.attrs.create(MIN_EVENT_ATTR, 0, dtype=np.uint64)
        # Pending until the file is finished
        events_group.attrs.create(MAX_EVENT_ATTR, 0, dtype=np.uint64)
        events_group.attrs[VERSION_ATTR] = HARMONIZER_VERSION
        logger.debug(f"Opened harmonic run {self._current_path}")

    def _finish_file(self) -> None:
        """Write the event count and close the current harmonic run."""
        self._current_file[EVENTS_GROUP].attrs.modify(
            MAX_EVENT_ATTR, np.uint64(self._current_event)
        )
        self._current_file.close()
        self._current_file = None
        self._finished_runs.append(self._current_path)
        logger.info(
            f"Finished harmonic run {self._current_path.name} "
            f"with {self._current_event} events"
        )
