from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

Record: TypeAlias = Mapping[str, Any]


@dataclass(frozen=True)
class ReaderResult:
    """Outcome of a source reader call: ``data`` plus an optional ``error``.

    ``truncated`` marks a result cut off at a row limit; the rows are usable
    but the source is incomplete.
    """

    data: Sequence[Record] = ()
    error: str | None = None
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AnalyticsSources:
    """Read-only snapshot of every source for one load cycle."""

    blocks: Sequence[Record] = ()
    labor_logs: Sequence[Record] = ()
    inventory_transactions: Sequence[Record] = ()
    yield_history: Sequence[Record] = ()
    spray_applications: Sequence[Record] = ()
    harvest_samples: Sequence[Record] = ()
    irrigation_events: Sequence[Record] = ()
    incomplete: tuple[str, ...] = field(default=())

    @classmethod
    def from_settled(
        cls,
        settled: Mapping[str, Sequence[Record]],
        incomplete: Sequence[str] = (),
    ) -> AnalyticsSources:
        return cls(
            blocks=tuple(settled.get("blocks", ())),
            labor_logs=tuple(settled.get("labor_logs", ())),
            inventory_transactions=tuple(
                settled.get("inventory_transactions", ())
            ),
            yield_history=tuple(settled.get("yield_history", ())),
            spray_applications=tuple(settled.get("spray_applications", ())),
            harvest_samples=tuple(settled.get("harvest_samples", ())),
            irrigation_events=tuple(settled.get("irrigation_events", ())),
            incomplete=tuple(sorted(incomplete)),
        )
