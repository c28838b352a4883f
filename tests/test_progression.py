import itertools
from datetime import datetime, timedelta, timezone

import pytest

from app.modules.workshops.catalog import AGENDA_STEP_NAME, REPORT_STEP_NAME, StepKind
from app.modules.workshops.progression import (
    aggregate_for, aggregate_is_stale, compute_progress, derive_effective_list, status_for,
)
from app.modules.workshops.schemas import Step, Workshop

BASE_TIME = datetime(2026, 3, 1, tzinfo=timezone.utc)


def make_steps(locks, with_agenda=True):
    steps = []
    number = 1
    if with_agenda:
        steps.append(Step(id="agenda", step_number=number, name=AGENDA_STEP_NAME, is_counted=False,
                          updated_at=BASE_TIME))
        number += 1
    for i, locked in enumerate(locks):
        steps.append(Step(
            id=f"s{i}",
            step_number=number,
            name=f"Step {i}",
            content={"items": [i]},
            is_locked=locked,
            updated_at=BASE_TIME + timedelta(minutes=i),
        ))
        number += 1
    return steps


def has_report(steps):
    return any(s.kind is StepKind.REPORT for s in steps)


def test_compute_progress_counts_only_counted_steps():
    steps = make_steps([True, False, True])
    steps[0] = steps[0].model_copy(update={"is_locked": True})  # a locked agenda never counts

    progress = compute_progress(steps)

    assert progress.total_counted == 3
    assert progress.completed_count == 2
    assert progress.all_complete is False


def test_compute_progress_empty_is_never_complete():
    progress = compute_progress(make_steps([]))
    assert progress.total_counted == 0
    assert progress.all_complete is False


def test_agenda_flagged_as_counted_is_still_not_counted():
    steps = [Step(id="a", step_number=1, name=AGENDA_STEP_NAME, is_counted=True, is_locked=True)]
    assert compute_progress(steps).total_counted == 0


@pytest.mark.parametrize("locks", list(itertools.product([False, True], repeat=4)))
def test_lock_flips_are_monotonic(locks):
    steps = make_steps(list(locks))
    before = compute_progress(steps).completed_count
    for index, step in enumerate(steps):
        if not step.counts_toward_progress:
            continue
        flipped = list(steps)
        flipped[index] = step.model_copy(update={"is_locked": not step.is_locked})
        after = compute_progress(flipped).completed_count
        if step.is_locked:
            assert after <= before
        else:
            assert after >= before


@pytest.mark.parametrize("locks", list(itertools.product([False, True], repeat=3)) + [()])
def test_report_present_iff_all_counted_steps_locked(locks):
    steps = make_steps(list(locks))
    progress = compute_progress(steps)

    effective = derive_effective_list(steps, progress.all_complete)

    expected = progress.total_counted > 0 and progress.completed_count == progress.total_counted
    assert has_report(effective) is expected


@pytest.mark.parametrize("all_complete", [True, False])
@pytest.mark.parametrize("locks", [[True, True], [True, False], []])
def test_derive_effective_list_is_idempotent(locks, all_complete):
    once = derive_effective_list(make_steps(locks), all_complete)
    assert derive_effective_list(once, all_complete) == once


def test_report_step_shape():
    steps = make_steps([True, True, True])

    effective = derive_effective_list(steps, True)

    report = effective[-1]
    assert len(effective) == len(steps) + 1
    assert report.name == REPORT_STEP_NAME
    assert report.step_number == steps[-1].step_number + 1
    assert report.is_locked is True
    assert report.is_counted is False
    assert report.content == {}
    assert report.updated_at == max(s.updated_at for s in steps)


def test_report_removed_when_no_longer_complete():
    steps = make_steps([True, True])
    with_report = derive_effective_list(steps, True)
    reopened = [s.model_copy(update={"is_locked": False}) if s.id == "s0" else s for s in with_report]

    effective = derive_effective_list(reopened, compute_progress(reopened).all_complete)

    assert not has_report(effective)
    assert len(effective) == len(steps)


def test_stored_report_step_is_hidden_until_complete():
    steps = make_steps([False])
    steps.append(Step(id="legacy-report", step_number=99, name=REPORT_STEP_NAME, is_counted=False))

    assert not has_report(derive_effective_list(steps, False))
    assert derive_effective_list(steps, True) == steps


def test_status_for():
    assert status_for(True) == "completed"
    assert status_for(False) == "in_progress"


def test_aggregate_staleness():
    progress = compute_progress(make_steps([True, False]))
    workshop = Workshop(id="w", name="Demo", created_by="u", **aggregate_for(progress))

    assert aggregate_for(progress) == {"status": "in_progress", "current_step": 1, "total_steps": 2}
    assert aggregate_is_stale(workshop, progress) is False
    assert aggregate_is_stale(workshop.model_copy(update={"current_step": 0}), progress) is True
    assert aggregate_is_stale(workshop.model_copy(update={"status": "completed"}), progress) is True
