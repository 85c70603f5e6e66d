"""Exception hierarchy for the harmonizer."""


class HarmonizerError(Exception):
    """Base exception for harmonizer errors."""

    pass


class ConfigError(HarmonizerError):
    """Raised when a configuration file is missing, malformed, or invalid."""

    pass


class RunNotFoundError(HarmonizerError):
    """Raised when the first run of a reader range does not exist on disk."""

    pass


class SchemaError(HarmonizerError):
    """Raised when a merger file does not follow the expected layout.

    Covers missing event bounds, missing datasets once a payload is known to be
    present, and malformed scaler records.
    """

    pass


class InvalidMergerVersionError(SchemaError):
    """Raised when a file's top level matches neither known merger version."""

    pass
