"""
Typed exception hierarchy for the progress kernel.

The engines are lenient toward bad *data*: an unparseable date, a
non-numeric percent, an inverted schedule or a service without hours is
normalized to ``None``, excluded or treated as zero -- never raised.
What remains here are faults in how the engine is *configured*: an
unknown IANA time zone, a malformed alias table, a configuration file
with an unsupported version.  Those must stop the caller, because every
curve computed under a bad configuration would be wrong.

Every exception carries a class-level ``code`` (machine-readable, stable
across message wording changes) and stores its context as attributes so
the structured log formatter can emit them as ``exc_<field>`` keys.

    ProgressEngineError (base)
    |
    +-- ConfigurationError
        +-- InvalidTimeZoneError
        +-- AliasTableError
        +-- UnsupportedConfigVersionError

Category        | Code                         | When Raised
----------------|------------------------------|----------------------------------
Configuration   | CONFIGURATION_ERROR          | Generic configuration fault
                | INVALID_TIME_ZONE            | Unknown IANA zone name
                | ALIAS_TABLE_INVALID          | Unknown alias key / non-list value
                | UNSUPPORTED_CONFIG_VERSION   | Settings file version not supported
"""


class ProgressEngineError(Exception):
    """
    Base exception for all progress kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "PROGRESS_ENGINE_ERROR"


class ConfigurationError(ProgressEngineError):
    """Base exception for configuration faults."""

    code: str = "CONFIGURATION_ERROR"


class InvalidTimeZoneError(ConfigurationError):
    """The configured time zone is not a known IANA zone."""

    code: str = "INVALID_TIME_ZONE"

    def __init__(self, time_zone: str):
        self.time_zone = time_zone
        super().__init__(f"Unknown time zone: {time_zone!r}")


class AliasTableError(ConfigurationError):
    """An alias table entry is malformed."""

    code: str = "ALIAS_TABLE_INVALID"

    def __init__(self, alias_key: str, reason: str):
        self.alias_key = alias_key
        self.reason = reason
        super().__init__(f"Invalid alias table entry {alias_key!r}: {reason}")


class UnsupportedConfigVersionError(ConfigurationError):
    """Settings file declares a version this engine does not understand."""

    code: str = "UNSUPPORTED_CONFIG_VERSION"

    def __init__(self, config_id: str, version: int, supported: tuple[int, ...]):
        self.config_id = config_id
        self.version = version
        self.supported = supported
        super().__init__(
            f"Unsupported version {version} for configuration {config_id}; "
            f"supported: {', '.join(str(v) for v in supported)}"
        )
