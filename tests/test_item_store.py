"""Tests for services/item_store.py: idempotent per-day upserts."""

from ecotrack.models.checklist_item import ChecklistItem

DAY = "2024-03-01"


def _row_count(database, user_id, day, action_id):
    with database.session_scope() as session:
        return (
            session.query(ChecklistItem)
            .filter_by(user_id=user_id, day=day, action_id=action_id)
            .count()
        )


def test_get_items_empty_without_any_day_row(services, user_id):
    assert services.items.get_items(user_id, DAY) == []


def test_set_item_twice_keeps_one_row(services, database, user_id):
    services.items.set_item(user_id, DAY, "reusable_bottle", True)
    services.items.set_item(user_id, DAY, "reusable_bottle", True)

    assert _row_count(database, user_id, DAY, "reusable_bottle") == 1
    assert services.items.get_items(user_id, DAY) == [{"actionId": "reusable_bottle", "done": True}]


def test_toggle_true_false_true_ends_true(services, database, user_id):
    for value in (True, False, True):
        services.items.set_item(user_id, DAY, "lights_off", value)

    assert _row_count(database, user_id, DAY, "lights_off") == 1
    assert services.items.done_map(user_id, DAY) == {"lights_off": True}


def test_items_are_scoped_by_day_and_user(services, user_id, other_user_id):
    services.items.set_item(user_id, DAY, "meatless_meal", True)
    services.items.set_item(user_id, "2024-03-02", "meatless_meal", False)
    services.items.set_item(other_user_id, DAY, "walk_transit", True)

    assert services.items.done_map(user_id, DAY) == {"meatless_meal": True}
    assert services.items.done_map(user_id, "2024-03-02") == {"meatless_meal": False}
    assert services.items.done_map(other_user_id, DAY) == {"walk_transit": True}
