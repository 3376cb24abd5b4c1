import pytest

from apps.workorders.exceptions import ValidationFailed
from apps.workorders.services import OrderService

pytestmark = pytest.mark.django_db


def test_bulk_updates_eligible_and_skips_the_rest(user, make_order):
    draft = make_order(user)
    completed = make_order(user, status="in-progress")
    OrderService.update_status(user, completed.internal_id, "completed")

    result = OrderService.bulk_update_status(user, [draft.work_order_id, completed.work_order_id], "pending")

    assert (result.requested, result.updated, result.skipped) == (2, 1, 1)

    draft.refresh_from_db()
    completed.refresh_from_db()
    assert draft.status == "pending"
    assert completed.status == "completed"


def test_bulk_entry_uses_bulk_action(user, make_order):
    order = make_order(user)

    OrderService.bulk_update_status(user, [order.unique_id], "pending")
    order.refresh_from_db()

    entry = order.workflow_history[-1]
    assert entry["action"] == "bulk_status_change"
    assert entry["comments"] == "Bulk status changed from draft to pending"


def test_bulk_skips_missing_and_invisible_orders(user, other, make_order):
    mine = make_order(user)
    theirs = make_order(other)

    result = OrderService.bulk_update_status(user, [mine.internal_id, theirs.internal_id, "WO-1999-01-0001"], "cancelled")

    assert (result.requested, result.updated, result.skipped) == (3, 1, 2)
    theirs.refresh_from_db()
    assert theirs.status == "draft"


def test_bulk_rejects_unknown_status_up_front(user, make_order):
    order = make_order(user)

    with pytest.raises(ValidationFailed):
        OrderService.bulk_update_status(user, [order.internal_id], "archived")


def test_bulk_items_are_independent(admin, make_order):
    orders = [make_order(admin, status=status) for status in ("draft", "approved", "on-hold", "cancelled")]

    result = OrderService.bulk_update_status(admin, [o.internal_id for o in orders], "pending", "batch")

    assert result.updated == 2
    assert result.skipped == 2

    statuses = []
    for order in orders:
        order.refresh_from_db()
        statuses.append(order.status)
    assert statuses == ["pending", "approved", "pending", "cancelled"]
