"""Detection of the attpc_merger version that produced a file.

Two layouts exist:
- 0.1.0: top level ``meta`` group, GET data under ``get``, FRIBDAQ under ``frib``
- 0.2.0: everything under ``events`` (and ``scalers``), one group per event
"""

import logging
from enum import Enum
from typing import Tuple

import h5py
import numpy as np

from harmonizer.constants import (
    EVENTS_GROUP,
    LEGACY_META_DATASET,
    LEGACY_META_GROUP,
    MAX_EVENT_ATTR,
    MIN_EVENT_ATTR,
)
from harmonizer.errors import InvalidMergerVersionError, SchemaError

logger = logging.getLogger(__name__)


class MergerVersion(Enum):
    """Known merger file layouts."""
    V010 = "0.1.0"
    V020 = "0.2.0"


def detect_version(merger_file: h5py.File) -> MergerVersion:
    """Classify an open merger file by its top level groups.

    Args:
        merger_file: Open HDF5 file

    Returns:
        The detected MergerVersion

    Raises:
        InvalidMergerVersionError: If the file matches neither layout
    """
    parent_groups = set(merger_file.keys())
    if LEGACY_META_GROUP in parent_groups:
        version = MergerVersion.V010
    elif EVENTS_GROUP in parent_groups:
        version = MergerVersion.V020
    else:
        raise InvalidMergerVersionError(
            f"Invalid merger version for file {merger_file.filename}: "
            f"expected a top level '{LEGACY_META_GROUP}' or '{EVENTS_GROUP}' group, "
            f"found {sorted(parent_groups)}"
        )
    logger.debug(f"Detected merger version {version.value} for {merger_file.filename}")
    return version


def read_event_bounds(merger_file: h5py.File, version: MergerVersion) -> Tuple[int, int]:
    """Read the declared event bounds of a merger file.

    The bounds are returned as a half-open interval ``[first, end)``. The 0.1.0
    meta array holds an inclusive maximum, the 0.2.0 ``max_event`` attribute an
    exclusive one.

    Args:
        merger_file: Open HDF5 file
        version: Layout of the file, from detect_version

    Returns:
        Tuple of (first event, one past the last event)

    Raises:
        SchemaError: If the bounds are missing or malformed
    """
    try:
        if version is MergerVersion.V010:
            meta = np.asarray(merger_file[LEGACY_META_GROUP][LEGACY_META_DATASET][()])
            if meta.ndim != 1 or meta.shape[0] < 3:
                raise SchemaError(
                    f"Malformed meta array in {merger_file.filename}: shape {meta.shape}"
                )
            first, end = int(meta[0]), int(meta[2]) + 1
        else:
            events = merger_file[EVENTS_GROUP]
            first = int(events.attrs[MIN_EVENT_ATTR])
            end = int(events.attrs[MAX_EVENT_ATTR])
    except KeyError as e:
        raise SchemaError(
            f"Missing event bounds in {merger_file.filename} (merger {version.value}): {e}"
        ) from e

    if end < first:
        raise SchemaError(
            f"Invalid event bounds in {merger_file.filename}: [{first}, {end})"
        )
    return first, end
