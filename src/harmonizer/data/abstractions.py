"""Value types shared by the reader, writer, and scanners.

Defines the unified event representation for both merger versions:
- GetEvent: one GET (subsystem A) payload
- FribEvent: one FRIBDAQ (subsystem B) payload
- MergerEvent: a complete event with its provenance
"""

from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np


@dataclass(frozen=True)
class RunRange:
    """Inclusive range of merger run numbers.

    Run numbers inside the range need not exist on disk.

    Attributes:
        min_run: First run number (inclusive)
        max_run: Last run number (inclusive)
    """

    min_run: int
    max_run: int

    def __post_init__(self) -> None:
        """Validate the range ordering."""
        if self.min_run > self.max_run:
            raise ValueError(
                f"Invalid run range: min_run {self.min_run} > max_run {self.max_run}"
            )

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.min_run, self.max_run + 1))

    def __len__(self) -> int:
        return self.max_run - self.min_run + 1

    def __contains__(self, run: object) -> bool:
        return isinstance(run, int) and self.min_run <= run <= self.max_run


@dataclass(frozen=True)
class GetEvent:
    """Unified GET event from the merger.

    Attributes:
        traces: 2-D array of signed 16-bit samples, one row per pad trace
        id: GET event identifier
        timestamp: GET timestamp
        timestamp_other: Secondary GET timestamp
    """

    traces: np.ndarray
    id: int
    timestamp: int
    timestamp_other: int


@dataclass(frozen=True)
class FribEvent:
    """Unified FRIBDAQ event from the merger.

    The event number and timestamp are local to the FRIBDAQ stream and are
    unrelated to the provenance fields of the enclosing MergerEvent.

    Attributes:
        traces: 2-D array of unsigned 16-bit samples (module 1903)
        coincidence: 1-D array of unsigned 16-bit values (module 977)
        event: FRIBDAQ event number
        timestamp: FRIBDAQ timestamp
    """

    traces: np.ndarray
    coincidence: np.ndarray
    event: int
    timestamp: int


@dataclass(frozen=True)
class MergerEvent:
    """A complete event from the merger.

    Either payload may be absent. An event with no payloads is still a valid
    event and is still written.

    Attributes:
        run_number: Original merger run this event was read from
        event: Original event index within that run
        get: GET payload, if any
        frib: FRIBDAQ payload, if any
    """

    run_number: int
    event: int
    get: Optional[GetEvent] = None
    frib: Optional[FribEvent] = None

    @property
    def is_empty(self) -> bool:
        """Return True if the event carries neither payload."""
        return self.get is None and self.frib is None


@dataclass(frozen=True)
class ScanSummary:
    """Cumulative statistics over a run range.

    Attributes:
        total_bytes: Sum of on-disk sizes of the runs found
        total_events: Sum of declared event counts of the runs found
        runs_found: Number of runs in the range that exist on disk
    """

    total_bytes: int
    total_events: int
    runs_found: int
