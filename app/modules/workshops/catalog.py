"""
Step kinds and the default Lean Inception step catalog.

The kind of a step is derived from its name exactly once, here. Everything else
asks the kind for its capabilities instead of comparing names.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

AGENDA_STEP_NAME = "Agenda"
REPORT_STEP_NAME = "Workshop Report"
REPORT_STEP_ID = "workshop-report"


class StepKind(str, Enum):
    TEMPLATE = "template"
    AGENDA = "agenda"
    REPORT = "report"

    @classmethod
    def for_name(cls, name: str) -> "StepKind":
        if name == AGENDA_STEP_NAME:
            return cls.AGENDA
        if name == REPORT_STEP_NAME:
            return cls.REPORT
        return cls.TEMPLATE

    @property
    def lockable(self) -> bool:
        return self is StepKind.TEMPLATE

    @property
    def counted(self) -> bool:
        return self is StepKind.TEMPLATE

    @property
    def editable(self) -> bool:
        return self is StepKind.TEMPLATE


@dataclass(frozen=True)
class CatalogEntry:
    step_number: int
    name: str
    content: Dict[str, Any] = field(default_factory=dict)
    is_counted: bool = True

    def as_document(self) -> Dict[str, Any]:
        return {
            "step_number": self.step_number,
            "name": self.name,
            "content": dict(self.content),
            "is_locked": False,
            "is_counted": self.is_counted,
        }


# Initial content is only the skeleton each template editor expects
DEFAULT_CATALOG: Tuple[CatalogEntry, ...] = (
    CatalogEntry(1, "Kickoff"),
    CatalogEntry(2, AGENDA_STEP_NAME, is_counted=False),
    CatalogEntry(3, "Parking Lot", {"items": []}),
    CatalogEntry(4, "Glossary", {"terms": []}),
    CatalogEntry(5, "Product Vision", {"vision": ""}),
    CatalogEntry(6, "Product Is/Is Not", {"is": [], "isNot": [], "does": [], "doesNot": []}),
    CatalogEntry(7, "Product Goals", {"goals": []}),
    CatalogEntry(8, "Personas", {"personas": []}),
    CatalogEntry(9, "User Journeys", {"journeys": []}),
    CatalogEntry(10, "Feature Brainstorming", {"features": []}),
    CatalogEntry(11, "Technical Review", {"reviews": []}),
    CatalogEntry(12, "Sequencer", {"waves": []}),
    CatalogEntry(13, "MVP Canvas"),
)


def validate_catalog(catalog) -> List[CatalogEntry]:
    """Return the catalog ordered by step number, rejecting duplicates and report entries."""
    entries = sorted(catalog, key=lambda e: e.step_number)
    seen = set()
    for entry in entries:
        if entry.step_number in seen:
            raise ValueError(f"Duplicate step number {entry.step_number} in step catalog")
        if StepKind.for_name(entry.name) is StepKind.REPORT:
            raise ValueError("The workshop report is derived and cannot be part of the catalog")
        seen.add(entry.step_number)
    return entries
