from datetime import date

import pytest
from django.utils import timezone

from apps.workorders.exceptions import AccessDenied
from apps.workorders.models import Order
from apps.workorders.services import OrderService
from apps.workorders.services.importer import (
    map_import_row,
    normalize_key,
    parse_boolean,
    parse_entry_points,
    parse_images,
    parse_survey_date,
)


def _row(**overrides):
    row = {
        "spaceName": "Tank 4",
        "building": "Plant 2",
        "locationDescription": "Behind the chiller",
        "technician": "Jane Doe",
        "surveyDate": "2024-04-02",
        "permitRequired": "Yes",
        "atmosphericHazard": "no",
        "priority": "HIGH",
    }
    row.update(overrides)
    return row


@pytest.mark.parametrize(
    "key,expected",
    [("spaceName", "space_name"), ("space_name", "space_name"), ("building", "building"), ("isSpaceNormallyLocked", "is_space_normally_locked")],
)
def test_normalize_key(key, expected):
    assert normalize_key(key) == expected


@pytest.mark.parametrize("value,expected", [("Yes", True), ("y", True), ("TRUE", True), ("1", True), ("no", False), ("", False), (None, False), (True, True)])
def test_parse_boolean(value, expected):
    assert parse_boolean(value) is expected


def test_parse_entry_points_clamps():
    assert parse_entry_points("3") == 3
    assert parse_entry_points("45") == 20
    assert parse_entry_points("-2") == 0
    assert parse_entry_points("many") == 0
    assert parse_entry_points("") is None


def test_parse_images_splits_on_semicolon():
    assert parse_images("https://a.example/1.jpg; https://a.example/2.jpg;") == [
        "https://a.example/1.jpg",
        "https://a.example/2.jpg",
    ]


def test_parse_survey_date_falls_back_to_today():
    assert parse_survey_date("2024-02-29") == date(2024, 2, 29)
    assert parse_survey_date("not a date") == timezone.localdate()
    assert parse_survey_date(None) == timezone.localdate()


def test_map_import_row():
    payload = map_import_row(_row(), 1)

    assert payload["space_name"] == "Tank 4"
    assert payload["location_description"] == "Behind the chiller"
    assert payload["permit_required"] is True
    assert payload["atmospheric_hazard"] is False
    assert payload["engulfment_hazard"] is False
    assert payload["priority"] == "high"
    assert payload["status"] == "draft"
    assert payload["survey_date"] == date(2024, 4, 2)


@pytest.mark.parametrize("column,label", [("spaceName", "Space Name"), ("building", "Building"), ("technician", "Technician")])
def test_map_import_row_requires_columns(column, label):
    with pytest.raises(ValueError) as exc_info:
        map_import_row(_row(**{column: "  "}), 7)

    assert str(exc_info.value) == f"Row 7: {label} is required and cannot be empty"


@pytest.mark.django_db
def test_bulk_import_reports_failures_by_row(admin):
    rows = [_row(), _row(building=""), _row(spaceName="Tank 5")]

    result = OrderService.bulk_import(admin, rows)

    assert (result.total, result.successful, result.failed) == (3, 2, 1)
    assert result.errors == [{"row": 2, "error": "Row 2: Building is required and cannot be empty"}]
    assert Order.objects.count() == 2
    assert all(order.workflow_history[0]["comments"] == "Imported from CSV" for order in result.orders)


@pytest.mark.django_db
def test_bulk_import_keeps_supplied_work_order_id_and_rejects_duplicates(manager):
    rows = [_row(workOrderId="WO-2020-01-0042"), _row(workOrderId="WO-2020-01-0042")]

    result = OrderService.bulk_import(manager, rows)

    assert result.successful == 1
    assert result.errors[0]["row"] == 2
    order = Order.objects.get()
    assert order.work_order_id == "WO-2020-01-0042"
    assert order.unique_id


@pytest.mark.django_db
def test_bulk_import_is_admin_or_manager_only(technician):
    with pytest.raises(AccessDenied):
        OrderService.bulk_import(technician, [_row()])
