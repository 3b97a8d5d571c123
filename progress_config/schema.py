"""
Engine settings schema.

Defines the frozen runtime artifact produced from a YAML settings file.
The engines never see this type directly: services unpack the time zone
and alias table and pass them as explicit parameters.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from progress_kernel.domain.aliases import DEFAULT_ALIASES, AliasTable


@dataclass(frozen=True)
class EngineSettings:
    """
    Validated engine configuration.

    ``time_zone`` is the only behavioral option; it affects calendar-day
    bucketing and nothing else.  ``checksum`` identifies the source
    document so a computed curve can be tied back to the settings that
    produced it.
    """

    config_id: str
    version: int
    time_zone: str
    aliases: AliasTable = field(default=DEFAULT_ALIASES)
    checksum: str = ""
    description: str | None = None
