"""Tests for services/task_registry.py: labels, generated ids, soft delete."""

import pytest

from ecotrack.models.activity import ActivityRecord
from ecotrack.models.custom_task import CustomTask
from ecotrack.services.checklist_service import BUILTIN_ACTIONS
from ecotrack.services.errors import ValidationError
from ecotrack.services.task_registry import (
    MAX_LABEL_LENGTH,
    generate_action_id,
    normalize_label,
    slugify,
)


# ── helpers ────────────────────────────────────────────────────


def test_slugify():
    assert slugify("Compost kitchen scraps!") == "compost_kitchen_scraps"
    assert slugify("   ") == "task"
    assert slugify("日本語") == "task"
    assert len(slugify("x" * 100)) == 32


def test_generated_ids_are_prefixed_and_unique():
    ids = {generate_action_id("Compost") for _ in range(50)}
    assert len(ids) == 50
    assert all(action_id.startswith("custom_compost_") for action_id in ids)
    assert not ids & {action["actionId"] for action in BUILTIN_ACTIONS}


def test_normalize_label_trims():
    assert normalize_label("  Compost  ") == "Compost"


@pytest.mark.parametrize("label", [None, "", "   ", 7, "x" * (MAX_LABEL_LENGTH + 1)])
def test_normalize_label_rejects(label):
    with pytest.raises(ValidationError):
        normalize_label(label)


# ── registry ───────────────────────────────────────────────────


def test_add_then_list_in_creation_order(services, user_id):
    first = services.tasks.add_task(user_id, "Compost")
    second = services.tasks.add_task(user_id, "Line-dry laundry")

    assert services.tasks.list_tasks(user_id) == [first, second]
    assert second == {"actionId": second["actionId"], "label": "Line-dry laundry"}


def test_add_with_blank_label_writes_nothing(services, database, user_id):
    with pytest.raises(ValidationError):
        services.tasks.add_task(user_id, "  ")
    with database.session_scope() as session:
        assert session.query(CustomTask).count() == 0


def test_tasks_are_per_user(services, user_id, other_user_id):
    task = services.tasks.add_task(user_id, "Compost")

    assert services.tasks.list_tasks(other_user_id) == []
    assert services.tasks.remove_task(other_user_id, task["actionId"]) is False
    assert services.tasks.list_tasks(user_id) == [task]


def test_remove_is_soft_and_single_shot(services, database, user_id):
    task = services.tasks.add_task(user_id, "Compost")

    assert services.tasks.remove_task(user_id, task["actionId"]) is True
    assert services.tasks.remove_task(user_id, task["actionId"]) is False
    assert services.tasks.list_tasks(user_id) == []

    with database.session_scope() as session:
        row = session.query(CustomTask).filter_by(action_id=task["actionId"]).one()
        assert row.active is False
        assert row.label == "Compost"


def test_remove_unknown_or_empty_id(services, user_id):
    assert services.tasks.remove_task(user_id, "custom_nope_1") is False
    assert services.tasks.remove_task(user_id, "") is False


def test_add_and_remove_are_recorded(services, database, user_id):
    task = services.tasks.add_task(user_id, "Compost")
    services.tasks.remove_task(user_id, task["actionId"])

    with database.session_scope() as session:
        actions = [
            record.action
            for record in session.query(ActivityRecord).filter_by(user_id=user_id).order_by(ActivityRecord.id)
        ]
    assert actions[-2:] == ["task_added", "task_removed"]
