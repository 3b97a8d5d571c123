"""
progress_config -- single public entrypoint for engine settings.

Responsibility:
    Provides the ONLY way to obtain engine settings at runtime through
    ``get_active_config()``.  No other component reads settings files or
    environment variables.  Returns a frozen ``EngineSettings``.

Architecture position:
    Configuration -- YAML-driven settings.  Sits above
    ``progress_kernel`` and below ``progress_services``.  The kernel and
    the engines MUST NEVER import from ``progress_config``; services
    unpack the settings into explicit engine parameters.

Invariants enforced:
    - Single entrypoint: all runtime settings flow through
      ``get_active_config()``.
    - The configured time zone is a known IANA zone.
    - Deterministic identity: the same YAML always yields the same
      checksum.

Failure modes:
    - ``FileNotFoundError`` -- no settings file with the requested name.
    - ``InvalidTimeZoneError`` -- unknown ``time_zone``.
    - ``UnsupportedConfigVersionError`` -- unknown ``version``.
    - ``AliasTableError`` -- malformed ``aliases`` section.

Audit relevance:
    Every successful call emits a ``PROGRESS_CONFIG_TRACE`` log entry with
    the config_id, version, checksum and time zone, tying every computed
    curve back to the settings that produced it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from progress_kernel.exceptions import InvalidTimeZoneError
from progress_config.loader import load_yaml_file, parse_settings
from progress_config.schema import EngineSettings

_logger = logging.getLogger("progress_kernel.config")

# Default settings directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def _validate_time_zone(time_zone: str) -> None:
    try:
        ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimeZoneError(time_zone) from exc


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> EngineSettings:
    """The ONLY public settings entrypoint.

    Args:
        name: Settings file stem (``<name>.yaml``).
        config_dir: Override directory.  Defaults to progress_config/sets/.

    Returns:
        EngineSettings -- the validated runtime artifact.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        InvalidTimeZoneError: If ``time_zone`` is not a known zone.
        UnsupportedConfigVersionError: If ``version`` is not supported.
        AliasTableError: If the alias section is malformed.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Settings file not found: {path}")

    settings = parse_settings(load_yaml_file(path))
    _validate_time_zone(settings.time_zone)

    _logger.info(
        "PROGRESS_CONFIG_TRACE",
        extra={
            "trace_type": "PROGRESS_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "time_zone": settings.time_zone,
            "alias_table_version": settings.aliases.version,
        },
    )
    return settings


__all__ = ["EngineSettings", "get_active_config"]
