"""
Recurring task instance generation.

Templates are tasks with `recurring=True` and an RFC 5545 RRULE. Each cycle
expands every template over [now, now + window] and materializes one task per
occurrence day. The (recurring_task_id, occurrence_day) unique constraint is
what makes a cycle idempotent; the existence check in front of it only avoids
needless failed inserts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dateutil.rrule import rrulestr
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from famifirst.core.config import settings
from famifirst.core.errors import InvalidInput
from famifirst.core.logging import get_logger
from famifirst.models.entities import Task, TaskStatusEnum

logger = get_logger(__name__)

CREATED = "created"
DUPLICATE = "duplicate"
FAILED = "failed"

# Identity, lifecycle and scheduling fields that an instance never inherits.
_NOT_INHERITED = frozenset(
    {
        "id",
        "status",
        "due_date",
        "occurrence_day",
        "completed_at",
        "completed_by_user_id",
        "recurring",
        "recurrence_rule",
        "recurring_task_id",
        "reminders",
        "created_at",
        "updated_at",
    }
)


@dataclass
class GenerationStats:
    templates: int = 0
    instances_created: int = 0
    duplicates_skipped: int = 0
    failed_occurrences: int = 0
    failed_templates: int = 0


def parse_recurrence_rule(rule: str | None, anchor: datetime):
    if not rule or not rule.strip():
        raise InvalidInput("recurrence rule is required")
    try:
        return rrulestr(rule.strip(), dtstart=anchor, ignoretz=True, forceset=True)
    except (ValueError, TypeError, KeyError) as exc:
        raise InvalidInput(f"unparsable recurrence rule: {rule!r}") from exc


def select_templates(db: Session) -> list[Task]:
    return db.execute(
        select(Task)
        .where(
            Task.recurring.is_(True),
            Task.recurrence_rule.is_not(None),
            Task.recurrence_rule != "",
        )
        .order_by(Task.id.asc())
    ).scalars().all()


def occurrences_in_window(template: Task, window_start: datetime, window_end: datetime) -> list[datetime]:
    anchor = template.due_date or template.created_at
    rule = parse_recurrence_rule(template.recurrence_rule, anchor)
    return rule.between(window_start, window_end, inc=True)


def instance_exists(db: Session, template_id: int, day: date) -> bool:
    return (
        db.execute(
            select(Task.id).where(Task.recurring_task_id == template_id, Task.occurrence_day == day).limit(1)
        ).first()
        is not None
    )


def build_instance(template: Task, occurrence: datetime, now: datetime) -> Task:
    inherited = {
        attr.key: getattr(template, attr.key)
        for attr in Task.__mapper__.column_attrs
        if attr.key not in _NOT_INHERITED
    }
    return Task(
        **inherited,
        status=TaskStatusEnum.pending,
        due_date=occurrence,
        occurrence_day=occurrence.date(),
        completed_at=None,
        completed_by_user_id=None,
        recurring=False,
        recurrence_rule=None,
        recurring_task_id=template.id,
        reminders="[]",
        created_at=now,
        updated_at=now,
    )


def materialize_instance(db: Session, template: Task, occurrence: datetime, now: datetime) -> str:
    """
    Insert the instance for (template, occurrence day) unless one exists.

    Returns CREATED, DUPLICATE when the day is already covered (including when
    a concurrent run wins the race between the check and the insert), or FAILED
    when the write itself errored. Each attempt runs in its own SAVEPOINT, so a
    failure here leaves the template's other occurrences untouched.
    """
    day = occurrence.date()
    try:
        with db.begin_nested():
            if instance_exists(db, template.id, day):
                return DUPLICATE
            db.add(build_instance(template, occurrence, now))
    except IntegrityError:
        logger.debug("Instance for template %s on %s already materialized", template.id, day.isoformat())
        return DUPLICATE
    except SQLAlchemyError:
        logger.warning(
            "Could not materialize instance for template %s on %s", template.id, day.isoformat(), exc_info=True
        )
        return FAILED
    logger.debug("Created instance for template %s due %s", template.id, occurrence.isoformat())
    return CREATED


def _generate_for_template(db: Session, template: Task, now: datetime, window_end: datetime) -> GenerationStats:
    outcome = GenerationStats()
    for occurrence in occurrences_in_window(template, now, window_end):
        result = materialize_instance(db, template, occurrence, now)
        if result == CREATED:
            outcome.instances_created += 1
        elif result == DUPLICATE:
            outcome.duplicates_skipped += 1
        else:
            outcome.failed_occurrences += 1
    return outcome


def run_generation_cycle(db: Session, now: datetime, window_days: int | None = None) -> GenerationStats:
    window_end = now + timedelta(days=window_days or settings.recurrence_window_days)
    logger.info("Starting recurring task generation for window %s .. %s", now.isoformat(), window_end.isoformat())

    stats = GenerationStats()
    templates = select_templates(db)
    stats.templates = len(templates)
    template_ids = [template.id for template in templates]

    for template_id, template in zip(template_ids, templates):
        try:
            outcome = _generate_for_template(db, template, now, window_end)
            db.commit()
        except Exception:
            db.rollback()
            stats.failed_templates += 1
            logger.exception("Recurring generation failed for template %s; continuing with the next one", template_id)
            continue
        stats.instances_created += outcome.instances_created
        stats.duplicates_skipped += outcome.duplicates_skipped
        stats.failed_occurrences += outcome.failed_occurrences

    logger.info(
        "Recurring task generation finished: %s templates, %s created, %s already present, "
        "%s occurrences failed, %s templates failed",
        stats.templates,
        stats.instances_created,
        stats.duplicates_skipped,
        stats.failed_occurrences,
        stats.failed_templates,
    )
    return stats
