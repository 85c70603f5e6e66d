"""Shared constants for the harmonizer.

File naming, HDF5 group/dataset names for both merger layouts, and the scaler
table schema.
"""

from typing import Tuple

# =============================================================================
# File naming
# =============================================================================

RUN_FILE_TEMPLATE = "run_{run:04d}.h5"
SCALER_FILE_NAME = "scalers.parquet"

# =============================================================================
# Merger 0.1.0 (legacy) layout
# =============================================================================

LEGACY_META_GROUP = "meta"
LEGACY_META_DATASET = "meta"
LEGACY_GET_GROUP = "get"
LEGACY_FRIB_GROUP = "frib"
LEGACY_FRIB_EVENT_GROUP = "evt"
LEGACY_FRIB_SCALER_GROUP = "scaler"

# =============================================================================
# Merger 0.2.0 (current) layout, also used for harmonic output
# =============================================================================

EVENTS_GROUP = "events"
SCALERS_GROUP = "scalers"
MIN_EVENT_ATTR = "min_event"
MAX_EVENT_ATTR = "max_event"
VERSION_ATTR = "version"

GET_TRACES_DATASET = "get_traces"
FRIB_PHYSICS_GROUP = "frib_physics"
FRIB_TRACE_DATASET = "1903"
FRIB_COINCIDENCE_DATASET = "977"

ORIG_RUN_ATTR = "orig_run"
ORIG_EVENT_ATTR = "orig_event"

# =============================================================================
# Scalers
# =============================================================================

# Number of instrumentation channels in a single scaler record
SCALER_CHANNELS = 11

SCALER_COLUMNS: Tuple[str, ...] = (
    "run",
    "event",
    "clock_free",
    "clock_live",
    "trig_free",
    "trig_live",
    "ic_sca",
    "mesh_sca",
    "si1_cfd",
    "si2",
    "sipm",
    "ic_ds",
    "ic_cfd",
)

# =============================================================================
# Sizes
# =============================================================================

BYTES_PER_GB = 1_000_000_000
DEFAULT_HARMONIC_SIZE = 10 * BYTES_PER_GB
