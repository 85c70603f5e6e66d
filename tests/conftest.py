"""Pytest fixtures for harmonizer tests.

Provides factories that build small synthetic merger runs in both layouts:
- 0.1.0 (legacy): ``meta``, ``get``, ``frib/evt``, ``frib/scaler``
- 0.2.0 (current): ``events/event_#``, ``scalers/event_#``
"""

import shutil
import tempfile

import h5py
import numpy as np
import pytest

# Add src directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from harmonizer.data.run_paths import construct_run_path


def get_traces_for(event: int) -> np.ndarray:
    """Deterministic GET traces for an event number."""
    return np.full((2, 4), event, dtype=np.int16) - np.arange(4, dtype=np.int16)


def frib_traces_for(event: int) -> np.ndarray:
    """Deterministic FRIBDAQ traces for an event number."""
    return np.full((2, 3), event, dtype=np.uint16) + np.arange(3, dtype=np.uint16)


def coincidence_for(event: int) -> np.ndarray:
    """Deterministic FRIBDAQ coincidence values for an event number."""
    return np.array([event, event + 1, event + 2], dtype=np.uint16)


def scaler_record_for(scaler: int) -> np.ndarray:
    """Deterministic eleven-channel scaler record."""
    return np.arange(11, dtype=np.uint32) + 100 * scaler


def write_legacy_run(
    directory: Path,
    run: int,
    num_events: int = 3,
    first_event: int = 0,
    with_get: bool = True,
    with_frib: bool = True,
    num_scalers: int = 0,
) -> Path:
    """Write a 0.1.0 merger run and return its path."""
    path = construct_run_path(directory, run)
    last_event = first_event + num_events - 1
    with h5py.File(path, "w") as f:
        meta = f.create_group("meta")
        meta.create_dataset(
            "meta", data=np.array([first_event, 0, last_event, 0], dtype=np.uint64)
        )
        get_group = f.create_group("get")
        frib_group = f.create_group("frib")
        evt_group = frib_group.create_group("evt")
        scaler_group = frib_group.create_group("scaler")

        for event in range(first_event, first_event + num_events):
            if with_get:
                get_group.create_dataset(f"evt{event}_data", data=get_traces_for(event))
                get_group.create_dataset(
                    f"evt{event}_header",
                    data=np.array([event, 1000 + event, 2000 + event], dtype=np.float64),
                )
            if with_frib:
                evt_group.create_dataset(f"evt{event}_1903", data=frib_traces_for(event))
                evt_group.create_dataset(f"evt{event}_977", data=coincidence_for(event))
                evt_group.create_dataset(
                    f"evt{event}_header", data=np.array([event, 500 + event], dtype=np.uint32)
                )

        for scaler in range(num_scalers):
            scaler_group.create_dataset(
                f"scaler{scaler}_data", data=scaler_record_for(scaler)
            )
    return path


def write_current_run(
    directory: Path,
    run: int,
    num_events: int = 3,
    first_event: int = 0,
    with_get: bool = True,
    with_frib: bool = True,
    scaler_bounds=None,
    scaler_indices=None,
) -> Path:
    """Write a 0.2.0 merger run and return its path.

    ``max_event`` is written as one past the last event. Scaler records are
    written for ``scaler_indices`` (default: every index in ``scaler_bounds``).
    """
    path = construct_run_path(directory, run)
    with h5py.File(path, "w") as f:
        events = f.create_group("events")
        events.attrs.create("min_event", first_event, dtype=np.uint64)
        events.attrs.create("max_event", first_event + num_events, dtype=np.uint64)

        for event in range(first_event, first_event + num_events):
            event_group = events.create_group(f"event_{event}")
            if with_get:
                traces = event_group.create_dataset("get_traces", data=get_traces_for(event))
                traces.attrs.create("id", event, dtype=np.uint32)
                traces.attrs.create("timestamp", 1000 + event, dtype=np.uint64)
                traces.attrs.create("timestamp_other", 2000 + event, dtype=np.uint64)
            if with_frib:
                frib_group = event_group.create_group("frib_physics")
                frib_group.attrs.create("event", event, dtype=np.uint32)
                frib_group.attrs.create("timestamp", 500 + event, dtype=np.uint32)
                frib_group.create_dataset("1903", data=frib_traces_for(event))
                frib_group.create_dataset("977", data=coincidence_for(event))

        scalers = f.create_group("scalers")
        if scaler_bounds is not None:
            scaler_min, scaler_max = scaler_bounds
            scalers.attrs.create("min_event", scaler_min, dtype=np.uint64)
            scalers.attrs.create("max_event", scaler_max, dtype=np.uint64)
            if scaler_indices is None:
                scaler_indices = range(scaler_min, scaler_max + 1)
            for scaler in scaler_indices:
                scalers.create_dataset(f"event_{scaler}", data=scaler_record_for(scaler))
    return path


def write_invalid_run(directory: Path, run: int) -> Path:
    """Write a run whose top level matches neither merger layout."""
    path = construct_run_path(directory, run)
    with h5py.File(path, "w") as f:
        f.create_group("something_else")
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp, ignore_errors=True)


@pytest.fixture
def merger_dir(temp_dir):
    """Directory holding synthetic merger runs."""
    path = temp_dir / "merger"
    path.mkdir()
    return path


@pytest.fixture
def harmonic_dir(temp_dir):
    """Directory receiving harmonic runs."""
    path = temp_dir / "harmonic"
    path.mkdir()
    return path


@pytest.fixture
def mixed_runs(merger_dir):
    """Runs 1 (legacy, 3 events), 3 (current, 2 events); run 2 is missing."""
    write_legacy_run(merger_dir, 1, num_events=3, num_scalers=4)
    write_current_run(merger_dir, 3, num_events=2, first_event=0, scaler_bounds=(0, 3))
    return merger_dir
