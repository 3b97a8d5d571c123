"""
Settings Loader (``progress_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``EngineSettings``.  This is internal tooling; the single public entry
point for runtime configuration is ``progress_config.get_active_config()``.

Architecture position
---------------------
**Config layer**.  Depends on ``progress_kernel`` (alias table, typed
exceptions) and PyYAML.  Never imported by the kernel or the engines.

Invariants enforced
-------------------
* Alias lists are validated strictly: an unknown list name or a value
  that is not a list of strings raises ``AliasTableError``.  Silently
  ignoring a typo would leave a field unread.
* Lists absent from the file keep their ``DEFAULT_ALIASES`` value.
* ``compute_checksum`` is a deterministic SHA-256 of canonical JSON.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id`` / ``version`` / ``time_zone``  -> ``KeyError``.
* Unsupported ``version``  -> ``UnsupportedConfigVersionError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from progress_kernel.domain.aliases import ALIAS_TABLE_VERSION, DEFAULT_ALIASES, AliasTable
from progress_kernel.exceptions import AliasTableError, UnsupportedConfigVersionError
from progress_config.schema import EngineSettings

SUPPORTED_VERSIONS: tuple[int, ...] = (1,)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_alias_table(
    data: dict[str, Any] | None,
    base: AliasTable = DEFAULT_ALIASES,
) -> AliasTable:
    """
    Overlay the alias lists in ``data`` onto ``base``.

    Raises:
        AliasTableError: unknown list name, wrong alias-table version, or
            a value that is not a non-empty list of strings.
    """
    if not data:
        return base
    if not isinstance(data, dict):
        raise AliasTableError("aliases", "expected a mapping of alias lists")

    known = set(AliasTable.list_names())
    overrides: dict[str, tuple[str, ...]] = {}
    for key, value in data.items():
        if key == "version":
            if value != ALIAS_TABLE_VERSION:
                raise AliasTableError(
                    "version", f"expected {ALIAS_TABLE_VERSION}, got {value!r}"
                )
            continue
        if key not in known:
            raise AliasTableError(key, "unknown alias list")
        if not isinstance(value, list) or not value:
            raise AliasTableError(key, "expected a non-empty list of strings")
        if not all(isinstance(entry, str) and entry.strip() for entry in value):
            raise AliasTableError(key, "every alias must be a non-blank string")
        overrides[key] = tuple(entry.strip() for entry in value)

    return base.replace(**overrides)


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of ``data`` rendered as canonical JSON."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from a loaded settings document.

    Raises:
        KeyError: a required key is missing.
        UnsupportedConfigVersionError: ``version`` is not supported.
        AliasTableError: the ``aliases`` section is malformed.
    """
    config_id = str(data["config_id"])
    version = data["version"]
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedConfigVersionError(config_id, version, SUPPORTED_VERSIONS)

    return EngineSettings(
        config_id=config_id,
        version=version,
        time_zone=str(data["time_zone"]),
        aliases=parse_alias_table(data.get("aliases")),
        checksum=compute_checksum(data),
        description=data.get("description"),
    )
