"""Harmonizer: re-organize AT-TPC merger runs into equal sized files.

Runs produced by the attpc_merger carry wildly different amounts of data. The
harmonizer streams every event of a run range, re-slices the stream into
harmonic files of (roughly) equal size on disk, and gathers all scalers into a
single parquet table.
"""

__version__ = "0.1.0"

HARMONIZER_VERSION = f"harmonizer:{__version__}"
