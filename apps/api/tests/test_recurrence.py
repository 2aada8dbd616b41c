from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from famifirst.core.config import settings
from famifirst.core.errors import InvalidInput
from famifirst.models.entities import Task, TaskPriorityEnum, TaskStatusEnum
from famifirst.services import recurrence
from famifirst.services.families import insert_family
from famifirst.services.recurrence import parse_recurrence_rule, run_generation_cycle

from conftest import START, seed_user


@pytest.fixture
def household(db_session):
    user = seed_user(db_session, "owner@example.com")
    family = insert_family(db_session, name="Household", creator_id=user.id, now=START)
    db_session.commit()
    return family


def _template(db, family, rule="FREQ=WEEKLY", due=None, **fields):
    template = Task(
        family_id=family.id,
        title=fields.pop("title", "Take out the trash"),
        created_by_user_id=family.created_by_user_id,
        recurring=True,
        recurrence_rule=rule,
        due_date=due if due is not None else START - timedelta(days=14) + timedelta(hours=1),
        created_at=START - timedelta(days=30),
        updated_at=START - timedelta(days=30),
        **fields,
    )
    db.add(template)
    db.commit()
    return template


def _instances(db, template_id):
    db.expire_all()
    return db.execute(
        select(Task).where(Task.recurring_task_id == template_id).order_by(Task.due_date.asc())
    ).scalars().all()


def test_weekly_template_only_materializes_window(db_session, household):
    template = _template(db_session, household)

    stats = run_generation_cycle(db_session, START)

    instances = _instances(db_session, template.id)
    due_dates = [item.due_date for item in instances]
    assert due_dates == [START + timedelta(days=7 * week, hours=1) for week in range(5)]
    assert all(START <= due <= START + timedelta(days=30) for due in due_dates)
    assert len({item.occurrence_day for item in instances}) == len(instances)
    assert stats.templates == 1
    assert stats.instances_created == 5
    assert stats.failed_templates == 0


def test_generation_is_idempotent(db_session, household):
    template = _template(db_session, household)
    run_generation_cycle(db_session, START)

    second = run_generation_cycle(db_session, START)
    later = run_generation_cycle(db_session, START + timedelta(days=7))

    assert second.instances_created == 0
    assert second.duplicates_skipped == 5
    # One new week slides into the window.
    assert later.instances_created == 1
    assert len(_instances(db_session, template.id)) == 6


def test_instances_copy_template_fields(db_session, household):
    template = _template(
        db_session,
        household,
        description="Bins to the curb",
        category="Chores",
        priority=TaskPriorityEnum.high,
        assigned_to="[7]",
        attachments='["bins.png"]',
        reminders='[{"minutes": 30}]',
        status=TaskStatusEnum.completed,
    )

    run_generation_cycle(db_session, START)

    instance = _instances(db_session, template.id)[0]
    assert instance.title == "Take out the trash"
    assert instance.description == "Bins to the curb"
    assert instance.category == "Chores"
    assert instance.priority == TaskPriorityEnum.high
    assert instance.assigned_to == "[7]"
    assert instance.attachments == '["bins.png"]'
    assert instance.family_id == template.family_id
    assert instance.status == TaskStatusEnum.pending
    assert instance.reminders == "[]"
    assert instance.recurring is False
    assert instance.recurrence_rule is None
    assert instance.completed_at is None
    assert instance.created_at == START


def test_bad_template_does_not_stop_the_cycle(db_session, household):
    broken = _template(db_session, household, rule="FREQ=SOMETIMES", title="Broken")
    healthy = _template(
        db_session, household, rule="FREQ=DAILY;INTERVAL=10", title="Water plants", due=START + timedelta(hours=2)
    )

    stats = run_generation_cycle(db_session, START)

    assert stats.templates == 2
    assert stats.failed_templates == 1
    assert _instances(db_session, broken.id) == []
    assert [item.due_date for item in _instances(db_session, healthy.id)] == [
        START + timedelta(days=offset, hours=2) for offset in (0, 10, 20)
    ]


def test_failed_occurrence_does_not_abort_its_siblings(db_session, household, monkeypatch):
    template = _template(db_session, household)
    real_build = recurrence.build_instance
    calls = []

    def flaky_build(template, occurrence, now):
        calls.append(occurrence)
        if len(calls) == 3:
            raise OperationalError("INSERT INTO tasks", {}, Exception("canceling statement due to statement timeout"))
        return real_build(template, occurrence, now)

    monkeypatch.setattr(recurrence, "build_instance", flaky_build)

    stats = run_generation_cycle(db_session, START)

    assert len(calls) == 5
    assert stats.instances_created == 4
    assert stats.failed_occurrences == 1
    assert stats.failed_templates == 0
    instances = _instances(db_session, template.id)
    assert len(instances) == 4
    assert calls[2] not in [item.due_date for item in instances]

    # The skipped day is picked up by the next cycle.
    monkeypatch.setattr(recurrence, "build_instance", real_build)
    retry = run_generation_cycle(db_session, START)
    assert retry.instances_created == 1
    assert retry.duplicates_skipped == 4
    assert len(_instances(db_session, template.id)) == 5


def test_non_recurring_tasks_are_ignored(db_session, household):
    template = _template(db_session, household)
    template.recurring = False
    db_session.commit()

    stats = run_generation_cycle(db_session, START)

    assert stats.templates == 0
    assert _instances(db_session, template.id) == []


def test_window_days_default_comes_from_settings(db_session, household, monkeypatch):
    template = _template(db_session, household, rule="FREQ=DAILY", due=START + timedelta(minutes=5))
    monkeypatch.setattr(settings, "recurrence_window_days", 3)

    run_generation_cycle(db_session, START)

    assert len(_instances(db_session, template.id)) == 3


def test_duplicate_instance_rejected_by_schema(db_session, household):
    template = _template(db_session, household)
    run_generation_cycle(db_session, START)
    first = _instances(db_session, template.id)[0]

    db_session.add(
        Task(
            family_id=template.family_id,
            title="Duplicate",
            created_by_user_id=template.created_by_user_id,
            recurring_task_id=template.id,
            occurrence_day=first.occurrence_day,
            due_date=first.due_date + timedelta(hours=3),
        )
    )
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_parse_recurrence_rule_rejects_garbage():
    with pytest.raises(InvalidInput):
        parse_recurrence_rule("", START)
    with pytest.raises(InvalidInput):
        parse_recurrence_rule("FREQ=WEEKLY;BYDAY=XX", START)
    rule = parse_recurrence_rule("FREQ=WEEKLY;BYDAY=MO,TH", START)
    assert rule.after(START) == START + timedelta(days=3)


def test_admin_endpoint_requires_internal_token(client, db_session, household):
    template = _template(db_session, household)

    assert client.post("/v1/admin/recurrence/run").status_code == 401
    assert client.post("/v1/admin/recurrence/run", headers={"X-Internal-Admin-Token": "nope"}).status_code == 401

    resp = client.post(
        "/v1/admin/recurrence/run",
        headers={"X-Internal-Admin-Token": settings.internal_admin_token},
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "templates": 1,
        "instances_created": 5,
        "duplicates_skipped": 0,
        "failed_occurrences": 0,
        "failed_templates": 0,
    }
    assert len(_instances(db_session, template.id)) == 5
