import re
from datetime import date, datetime

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.workorders.models import HAZARD_FLAGS, Order

TRUTHY_VALUES = {"yes", "true", "1", "y"}
MAX_ENTRY_POINTS = 20

TEXT_FIELDS = (
    "space_name",
    "building",
    "location_description",
    "confined_space_description",
    "technician",
    "entry_requirements",
    "atmospheric_hazard_description",
    "engulfment_hazard_description",
    "configuration_hazard_description",
    "other_hazards_description",
    "ppe_list",
    "notes",
)

REQUIRED_COLUMNS = (
    ("space_name", "Space Name"),
    ("building", "Building"),
    ("technician", "Technician"),
)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_key(key) -> str:
    """Accept both snake_case and camelCase CSV headers: spaceName -> space_name"""
    key = str(key).strip()
    if "_" in key or key.islower():
        return key.lower()
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def parse_boolean(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_VALUES
    return False


def parse_choice(value, choices, default):
    candidate = str(value or "").strip().lower()
    return candidate if candidate in {c for c, _ in choices} else default


def parse_survey_date(value) -> date:
    """Unparseable or missing dates fall back to today"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value or "").strip()
    if text:
        try:
            parsed = parse_date(text) or parse_datetime(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, datetime):
            return parsed.date()
        if parsed:
            return parsed

    return timezone.localdate()


def parse_entry_points(value):
    text = str(value if value is not None else "").strip()
    if not text:
        return None
    try:
        number = int(float(text))
    except ValueError:
        return 0
    return max(0, min(number, MAX_ENTRY_POINTS))


def parse_images(value) -> list:
    if isinstance(value, list):
        return [str(url).strip() for url in value if str(url).strip()]
    return [url.strip() for url in str(value or "").split(";") if url.strip()]


def map_import_row(row: dict, row_number: int) -> dict:
    """
    Map one CSV row to an order payload

    Raises ValueError naming the row when a required column is empty
    """
    data = {normalize_key(key): value for key, value in row.items()}

    for field, label in REQUIRED_COLUMNS:
        if not str(data.get(field) or "").strip():
            raise ValueError(f"Row {row_number}: {label} is required and cannot be empty")

    payload = {field: str(data.get(field) or "").strip() for field in TEXT_FIELDS}
    payload.update({flag: parse_boolean(data.get(flag)) for flag in HAZARD_FLAGS})
    payload.update(
        {
            "priority": parse_choice(data.get("priority"), Order.PRIORITY_CHOICES, "medium"),
            "status": parse_choice(data.get("status"), Order.STATUS_CHOICES, "draft"),
            "survey_date": parse_survey_date(data.get("survey_date")),
            "image_urls": parse_images(data.get("images") or data.get("image_urls")),
        }
    )

    entry_points = parse_entry_points(data.get("number_of_entry_points"))
    if entry_points is not None:
        payload["number_of_entry_points"] = entry_points

    if "is_space_normally_locked" in data:
        payload["is_space_normally_locked"] = parse_boolean(data["is_space_normally_locked"])

    work_order_id = str(data.get("work_order_id") or "").strip()
    if work_order_id:
        payload["work_order_id"] = work_order_id

    return payload
