from unittest import mock

import pytest
from django.db import DatabaseError

from apps.workorders.exceptions import AccessDenied, InvalidTransition, NotFound, PersistenceError, ValidationFailed
from apps.workorders.models import HAZARD_FLAGS, Order
from apps.workorders.services import OrderFilters, OrderService
from apps.workorders.services.order_service import normalize_hazard_flags

pytestmark = pytest.mark.django_db


# create


def test_create_records_creator_and_history(user, make_order):
    order = make_order(user)

    assert order.user_id == user.id
    assert order.created_by == user.id
    assert order.last_modified_by == user.id
    assert order.status == "draft"
    assert [entry["action"] for entry in order.workflow_history] == ["created"]
    assert order.workflow_history[0]["performed_by"] == user.id


def test_create_fills_missing_hazard_flags(user, order_payload):
    payload = order_payload()
    for flag in HAZARD_FLAGS:
        payload.pop(flag)
    payload["atmospheric_hazard"] = None
    payload["permit_required"] = True

    order = OrderService.create_order(user, payload)
    order.refresh_from_db()

    assert order.permit_required is True
    assert order.atmospheric_hazard is False
    assert all(getattr(order, flag) is not None for flag in HAZARD_FLAGS)


def test_normalize_hazard_flags_leaves_absent_flags_on_update():
    payload = normalize_hazard_flags({"ppe_required": None}, fill_missing=False)

    assert payload == {"ppe_required": False}


def test_create_rejects_missing_required_fields(user, order_payload):
    payload = order_payload(space_name="", technician="")
    payload.pop("building")

    with pytest.raises(ValidationFailed) as exc_info:
        OrderService.create_order(user, payload)

    fields = {error["field"] for error in exc_info.value.errors}
    assert {"space_name", "technician", "building"} <= fields
    assert Order.objects.count() == 0


def test_create_rejects_bad_image_url(user, order_payload):
    with pytest.raises(ValidationFailed) as exc_info:
        OrderService.create_order(user, order_payload(image_urls=["ftp://files.example.com/a.jpg"]))

    assert exc_info.value.errors[0]["field"].startswith("image_urls")


def test_create_rejects_too_many_tags(user, order_payload):
    with pytest.raises(ValidationFailed):
        OrderService.create_order(user, order_payload(tags=[f"tag{i}" for i in range(11)]))


def test_create_wraps_database_errors(user, order_payload):
    with mock.patch.object(Order, "save", side_effect=DatabaseError("disk full")):
        with pytest.raises(PersistenceError) as exc_info:
            OrderService.create_order(user, order_payload())

    assert isinstance(exc_info.value.cause, DatabaseError)


# list


def test_list_paginates(user, make_order):
    for _ in range(12):
        make_order(user)

    page = OrderService.list_orders(user, page=2, limit=5)

    assert len(page.items) == 5
    assert page.total_items == 12
    assert page.total_pages == 3
    assert page.has_next and page.has_previous


def test_list_past_last_page_is_empty(user, make_order):
    make_order(user)

    page = OrderService.list_orders(user, page=5, limit=10)

    assert page.items == []
    assert page.total_items == 1
    assert not page.has_next


def test_list_sorts_ascending(user, make_order):
    make_order(user, building="Charlie")
    make_order(user, building="Alpha")
    make_order(user, building="Bravo")

    page = OrderService.list_orders(user, sort_by="building", sort_order="asc")

    assert [o.building for o in page.items] == ["Alpha", "Bravo", "Charlie"]


def test_list_rejects_unknown_sort_field(user):
    with pytest.raises(ValidationFailed):
        OrderService.list_orders(user, sort_by="password")


def test_list_applies_filters(user, make_order):
    make_order(user, priority="critical")
    make_order(user, priority="low")

    page = OrderService.list_orders(user, filters=OrderFilters(priority="critical"))

    assert [o.priority for o in page.items] == ["critical"]


# update


def test_update_changes_fields_and_appends_entry(user, make_order):
    order = make_order(user)

    updated = OrderService.update_order(user, order.work_order_id, {"notes": "Ladder missing", "priority": "high"})

    assert updated.notes == "Ladder missing"
    assert updated.priority == "high"
    assert [entry["action"] for entry in updated.workflow_history] == ["created", "updated"]


def test_update_with_status_change_records_transition(user, make_order):
    order = make_order(user)

    updated = OrderService.update_order(user, order.unique_id, {"status": "pending", "comments": "ready"})

    last = updated.workflow_history[-1]
    assert updated.status == "pending"
    assert last["action"] == "status_change"
    assert last["previous_status"] == "draft"
    assert last["new_status"] == "pending"
    assert last["comments"] == "ready"


def test_update_with_illegal_status_changes_nothing(user, make_order):
    order = make_order(user)

    with pytest.raises(InvalidTransition):
        OrderService.update_order(user, order.internal_id, {"status": "completed", "notes": "should not stick"})

    order.refresh_from_db()
    assert order.status == "draft"
    assert order.notes == ""
    assert len(order.workflow_history) == 1


def test_update_rejects_immutable_fields(user, make_order):
    order = make_order(user)

    with pytest.raises(ValidationFailed) as exc_info:
        OrderService.update_order(user, order.internal_id, {"work_order_id": "WO-0000-00-0000", "created_by": "x"})

    assert {e["field"] for e in exc_info.value.errors} == {"work_order_id", "created_by"}
    order.refresh_from_db()
    assert order.created_by == user.id


def test_update_keeps_unmentioned_hazard_flags(user, make_order):
    order = make_order(user, permit_required=True)

    updated = OrderService.update_order(user, order.internal_id, {"ppe_required": None})

    assert updated.permit_required is True
    assert updated.ppe_required is False


def test_update_of_invisible_order_is_not_found(user, other, make_order):
    theirs = make_order(other)

    with pytest.raises(NotFound):
        OrderService.update_order(user, theirs.internal_id, {"notes": "hijack"})


# status


def test_update_status_appends_exactly_one_entry(user, make_order):
    order = make_order(user, status="pending")
    before = len(order.workflow_history)

    updated = OrderService.update_status(user, order.work_order_id, "approved", "looks good")

    assert updated.status == "approved"
    assert len(updated.workflow_history) == before + 1
    entry = updated.workflow_history[-1]
    assert entry["previous_status"] == "pending"
    assert entry["new_status"] == "approved"
    assert entry["comments"] == "looks good"
    assert updated.approved_by == user.id
    assert updated.approved_date is not None


def test_update_status_default_comment(user, make_order):
    order = make_order(user)

    updated = OrderService.update_status(user, order.internal_id, "pending")

    assert updated.workflow_history[-1]["comments"] == "Status changed from draft to pending"


def test_completed_to_pending_is_rejected_and_nothing_changes(admin, make_order):
    order = make_order(admin, status="in-progress")
    OrderService.update_status(admin, order.internal_id, "completed")
    order.refresh_from_db()
    history = list(order.workflow_history)

    with pytest.raises(InvalidTransition) as exc_info:
        OrderService.update_status(admin, order.internal_id, "pending")

    assert exc_info.value.current == "completed"
    order.refresh_from_db()
    assert order.status == "completed"
    assert order.workflow_history == history
    assert order.completed_date is not None


def test_update_status_rejects_unknown_status(user, make_order):
    order = make_order(user)

    with pytest.raises(ValidationFailed):
        OrderService.update_status(user, order.internal_id, "archived")


def test_workflow_comments_are_truncated(user, make_order):
    order = make_order(user)

    updated = OrderService.update_status(user, order.internal_id, "pending", "x" * 900)

    assert len(updated.workflow_history[-1]["comments"]) == 500


# delete


def test_delete_then_every_identifier_is_not_found(user, make_order):
    order = make_order(user)
    identifiers = (order.internal_id, order.unique_id, order.work_order_id)

    OrderService.delete_order(user, order.work_order_id)

    for identifier in identifiers:
        with pytest.raises(NotFound):
            OrderService.get_order(user, identifier)


def test_delete_of_invisible_order_is_not_found(user, other, make_order):
    theirs = make_order(other)

    with pytest.raises(NotFound):
        OrderService.delete_order(user, theirs.internal_id)

    assert Order.objects.filter(pk=theirs.pk).exists()


# images


def test_add_images_appends_and_enforces_limit(user, make_order, settings):
    settings.WORK_ORDERS = {**settings.WORK_ORDERS, "MAX_IMAGES_PER_ORDER": 2}
    order = make_order(user)

    updated = OrderService.add_images(user, order.internal_id, ["https://img.example.com/1.jpg"])
    assert updated.image_urls == ["https://img.example.com/1.jpg"]
    assert updated.workflow_history[-1]["action"] == "images_added"

    with pytest.raises(ValidationFailed):
        OrderService.add_images(user, order.internal_id, ["https://img.example.com/2.jpg", "https://img.example.com/3.jpg"])

    order.refresh_from_db()
    assert len(order.image_urls) == 1


# delete all / stats


def test_delete_all_requires_phrase(admin, make_order):
    make_order(admin)

    with pytest.raises(ValidationFailed):
        OrderService.delete_all(admin, "delete everything")

    assert Order.objects.count() == 1


def test_delete_all_removes_every_order(admin, user, make_order):
    make_order(admin)
    make_order(user)

    result = OrderService.delete_all(admin, "delete all work orders")

    assert result == {"deleted_count": 2, "total_before": 2}
    assert Order.objects.count() == 0


def test_delete_all_is_forbidden_for_plain_users(user):
    with pytest.raises(AccessDenied):
        OrderService.delete_all(user, "DELETE ALL WORK ORDERS")


def test_stats_are_scoped(user, other, make_order):
    make_order(user, priority="high")
    make_order(user, priority="low", status="pending")
    make_order(other)

    stats = OrderService.stats(user)

    assert stats["total"] == 2
    assert stats["status_distribution"] == {"draft": 1, "pending": 1}
    assert stats["priority_distribution"] == {"high": 1, "low": 1}
    assert stats["counters"]["today"] == 2
    assert len(stats["recent_activity"]) == 2
