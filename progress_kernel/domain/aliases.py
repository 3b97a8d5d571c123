"""
Aliases -- Versioned field-alias table for heterogeneous input records.

Responsibility:
    Upstream documents name the same concept a dozen different ways
    (``percentual``, ``manualPercent``, ``realPercentSnapshot`` ...).
    Every normalizer consults exactly one ``AliasTable`` instead of
    scattering ``if`` chains, so schema drift in a new upstream source is
    absorbed by extending a list here (or in the YAML settings), never by
    touching a calculator.

    Entries may be dotted paths (``audit.submittedAt``) that walk nested
    mappings.  Order matters: the first entry that yields a usable value
    wins.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

ALIAS_TABLE_VERSION = 1


class _Missing:
    """Sentinel type for an absent key (distinct from an explicit None)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True)
class AliasTable:
    """
    Ordered alias lists, one per concept.

    Contract:
        Immutable.  ``replace()`` returns a new table with selected lists
        swapped out (used by the YAML settings loader).
    """

    version: int = ALIAS_TABLE_VERSION

    # Progress-event documents
    update_list_keys: tuple[str, ...] = (
        "updates",
        "atualizacoes",
        "historicoAtualizacoes",
        "historico",
        "history",
        "progressUpdates",
        "percentualUpdates",
        "realUpdates",
    )
    percent_keys: tuple[str, ...] = (
        "percent",
        "manualPercent",
        "realPercentSnapshot",
        "totalPct",
        "percentual",
        "percentualInformado",
        "percentualReal",
        "percentualRealAtual",
        "realPercent",
        "andamento",
        "pct",
        "value",
        "valor",
        "progress",
    )
    worked_day_keys: tuple[str, ...] = (
        "reportDate",
        "reportDateMillis",
        "workedDay",
        "workDate",
        "date",
        "data",
        "dataTrabalhada",
        "diaTrabalhado",
    )
    audit_submitted_keys: tuple[str, ...] = ("audit.submittedAt",)
    fallback_date_keys: tuple[str, ...] = (
        "createdAt",
        "updatedAt",
        "submittedAt",
        "timestamp",
        "atualizadoEm",
        "lastUpdateDate",
    )
    timestamp_keys: tuple[str, ...] = (
        "audit.submittedAt",
        "submittedAt",
        "updatedAt",
        "createdAt",
        "timestamp",
        "atualizadoEm",
    )
    created_at_keys: tuple[str, ...] = ("createdAt",)
    event_id_keys: tuple[str, ...] = ("id", "updateId")
    author_keys: tuple[str, ...] = (
        "audit.submittedBy",
        "audit.token",
        "token",
        "author",
    )
    mode_keys: tuple[str, ...] = ("mode", "audit.submittedByType")
    description_keys: tuple[str, ...] = ("description", "descricao")
    item_list_keys: tuple[str, ...] = ("items", "itens", "checklistUpdates")
    item_id_keys: tuple[str, ...] = ("itemId", "id", "checklistId")
    item_percent_keys: tuple[str, ...] = ("pct", "progress", "percent", "percentual")

    # Service documents
    service_id_keys: tuple[str, ...] = ("id", "serviceId", "os")
    hours_keys: tuple[str, ...] = (
        "totalHours",
        "horasPrevistas",
        "horas",
        "hours",
        "peso",
        "weight",
        "totalHoras",
    )
    start_keys: tuple[str, ...] = (
        "plannedStart",
        "dataInicio",
        "inicioPrevisto",
        "inicioPlanejado",
        "startDate",
    )
    end_keys: tuple[str, ...] = (
        "plannedEnd",
        "dataFim",
        "fimPrevisto",
        "fimPlanejado",
        "endDate",
    )
    planned_daily_keys: tuple[str, ...] = ("plannedDaily", "plannedDailySeries")
    checklist_keys: tuple[str, ...] = ("checklist", "checklists")
    weight_keys: tuple[str, ...] = ("weight", "peso")
    checklist_progress_keys: tuple[str, ...] = ("progress", "pct", "percent")
    service_description_keys: tuple[str, ...] = (
        "description",
        "descricao",
        "name",
        "nome",
    )
    status_keys: tuple[str, ...] = ("status",)

    # Grouping documents
    subpackage_list_keys: tuple[str, ...] = ("subpackages", "subpacotes", "subPackages")
    service_list_keys: tuple[str, ...] = ("services", "servicos")
    name_keys: tuple[str, ...] = ("name", "nome", "code", "codigo")

    @classmethod
    def list_names(cls) -> tuple[str, ...]:
        """Names of every alias list (excludes ``version``)."""
        return tuple(f.name for f in dataclasses.fields(cls) if f.name != "version")

    def replace(self, **overrides: Any) -> AliasTable:
        """Return a copy with the given lists replaced."""
        return dataclasses.replace(self, **overrides)


DEFAULT_ALIASES = AliasTable()


def resolve_path(raw: Any, path: str) -> Any:
    """
    Walk a dotted path through nested mappings.

    Returns ``MISSING`` when any segment is absent; an explicit ``None``
    stored under a key is returned as ``None``.
    """
    current = raw
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return MISSING
        current = current[segment]
    return current


def iter_present(raw: Any, keys: tuple[str, ...]) -> Iterator[tuple[str, Any]]:
    """Yield ``(alias, value)`` for every alias present in ``raw``, in order."""
    for key in keys:
        value = resolve_path(raw, key)
        if value is not MISSING:
            yield key, value


def first_text(raw: Any, keys: tuple[str, ...]) -> str | None:
    """First non-blank string (or number rendered as text) among the aliases."""
    for _, value in iter_present(raw, keys):
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (int, str)):
            text = str(value).strip()
            if text:
                return text
    return None
