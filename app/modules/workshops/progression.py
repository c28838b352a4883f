"""
Workshop progress and the effective step list. Pure functions, no I/O.

The "Workshop Report" step is never stored: it exists in the effective list only
while every counted step is locked, so both values are recomputed on every load
and after every lock toggle.
"""
from dataclasses import dataclass
from typing import Dict, List, Sequence

from app.modules.workshops.catalog import REPORT_STEP_ID, REPORT_STEP_NAME, StepKind
from app.modules.workshops.schemas import Step, Workshop


@dataclass(frozen=True)
class Progress:
    completed_count: int
    total_counted: int
    all_complete: bool


def compute_progress(steps: Sequence[Step]) -> Progress:
    counted = [s for s in steps if s.counts_toward_progress]
    completed = sum(1 for s in counted if s.is_locked)
    return Progress(
        completed_count=completed,
        total_counted=len(counted),
        all_complete=len(counted) > 0 and completed == len(counted),
    )


def status_for(all_complete: bool) -> str:
    return "completed" if all_complete else "in_progress"


def report_step_for(steps: Sequence[Step]) -> Step:
    """Synthetic report placed after the last step; its timestamp is the newest step's."""
    last_number = max((s.step_number for s in steps), default=0)
    timestamps = [s.updated_at for s in steps if s.updated_at is not None]
    return Step(
        id=REPORT_STEP_ID,
        step_number=last_number + 1,
        name=REPORT_STEP_NAME,
        content={},
        is_locked=True,
        is_counted=False,
        updated_at=max(timestamps) if timestamps else None,
    )


def derive_effective_list(steps: Sequence[Step], all_complete: bool) -> List[Step]:
    has_report = any(s.kind is StepKind.REPORT for s in steps)
    if has_report == all_complete:
        return list(steps)
    if all_complete:
        return sorted([*steps, report_step_for(steps)], key=lambda s: s.step_number)
    return [s for s in steps if s.kind is not StepKind.REPORT]


def aggregate_for(progress: Progress) -> Dict[str, object]:
    return {
        "status": status_for(progress.all_complete),
        "current_step": progress.completed_count,
        "total_steps": progress.total_counted,
    }


def aggregate_is_stale(workshop: Workshop, progress: Progress) -> bool:
    return (
        workshop.status != status_for(progress.all_complete)
        or workshop.current_step != progress.completed_count
        or workshop.total_steps != progress.total_counted
    )
