import logging
import math
import re
from dataclasses import dataclass, field
from datetime import timedelta

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Count
from django.utils import timezone

from apps.authentication.identity import Caller
from apps.workorders.exceptions import AccessDenied, NotFound, PersistenceError, ValidationFailed, WorkOrderError
from apps.workorders.models import HAZARD_FLAGS, SORT_FIELDS, Order
from apps.workorders.serializers import STATUS_VALUES, OrderWriteSerializer
from apps.workorders.transitions import ensure_transition
from .access import OrderFilters, identifier_predicate, visible_orders
from .counters import reserve_work_order_id
from .importer import map_import_row

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = frozenset(
    {
        "id",
        "internal_id",
        "unique_id",
        "work_order_id",
        "user_id",
        "created_by",
        "workflow_history",
    }
)

IMAGE_URL_PATTERN = re.compile(r"^https?://.+")


@dataclass
class OrderPage:
    items: list
    page: int
    total_pages: int
    total_items: int
    page_size: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass
class BulkResult:
    requested: int
    updated: int
    skipped: int


@dataclass
class ImportResult:
    total: int
    successful: int = 0
    failed: int = 0
    errors: list = field(default_factory=list)
    orders: list = field(default_factory=list)


def normalize_hazard_flags(payload: dict, fill_missing: bool = True) -> dict:
    """
    Coerce missing or null hazard flags to False

    On create every flag is filled in; on update only flags present in the
    payload are touched so partial updates keep their stored values
    """
    for flag in HAZARD_FLAGS:
        if flag in payload:
            if payload[flag] is None:
                payload[flag] = False
        elif fill_missing:
            payload[flag] = False
    return payload


class OrderService:
    """
    Service layer for work order operations
    Scopes every lookup to the caller, guards status transitions and keeps
    the workflow history append-only
    """

    @staticmethod
    def list_orders(
        caller: Caller,
        filters: OrderFilters = None,
        page: int = 1,
        limit: int = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> OrderPage:
        if sort_by not in SORT_FIELDS:
            raise ValidationFailed.for_field("sort_by", f"Invalid sort field: {sort_by}")
        if sort_order not in ("asc", "desc"):
            raise ValidationFailed.for_field("sort_order", "Sort order must be asc or desc")

        limit = limit or settings.WORK_ORDERS["PAGE_SIZE"]
        page = max(int(page), 1)

        ordering = [sort_by if sort_order == "asc" else f"-{sort_by}"]
        if sort_by != "created_at":
            ordering.append("-created_at")

        queryset = visible_orders(caller, filters).order_by(*ordering)
        total = queryset.count()
        offset = (page - 1) * limit
        items = list(queryset[offset : offset + limit]) if offset < total else []

        logger.debug(f"Listed {len(items)} of {total} orders for {caller.role} {caller.id}")

        return OrderPage(
            items=items,
            page=page,
            total_pages=math.ceil(total / limit),
            total_items=total,
            page_size=limit,
        )

    @staticmethod
    def get_order(caller: Caller, identifier) -> Order:
        return OrderService._find(caller, identifier)

    @staticmethod
    def create_order(caller: Caller, payload: dict) -> Order:
        """
        Create a new work order

        Args:
            caller: identity of the submitting user
            payload: order fields; missing/null hazard flags become False

        Returns:
            Created Order with its identifiers assigned

        Raises:
            ValidationFailed: if the payload fails field constraints
            PersistenceError: if identifier assignment or the write fails
        """
        logger.info(f"Creating work order for user {caller.id}")

        order = OrderService._build(caller, payload)
        order.append_workflow_entry("created", caller.id, "Work order created")

        with transaction.atomic():
            OrderService._save(order)

        logger.info(f"Created work order {order.work_order_id} (unique {order.unique_id}, internal {order.internal_id})")
        return order

    @staticmethod
    def update_order(caller: Caller, identifier, payload: dict) -> Order:
        """
        Partially update an order

        A status change is checked against the transition table before anything
        is applied; a rejected transition rejects the whole update.
        """
        payload = dict(payload)
        comments = payload.pop("comments", None)

        immutable = sorted(IMMUTABLE_FIELDS & payload.keys())
        if immutable:
            raise ValidationFailed([{"field": name, "message": "Field cannot be modified"} for name in immutable])

        normalize_hazard_flags(payload, fill_missing=False)

        with transaction.atomic():
            order = OrderService._find(caller, identifier, lock=True)

            serializer = OrderWriteSerializer(order, data=payload, partial=True)
            if not serializer.is_valid():
                raise ValidationFailed.from_serializer_errors(serializer.errors)

            changes = dict(serializer.validated_data)
            requested = changes.pop("status", None)
            status_changed = requested is not None and requested != order.status

            if status_changed:
                ensure_transition(order.status, requested)

            for name, value in changes.items():
                setattr(order, name, value)
            order.last_modified_by = caller.id

            if status_changed:
                OrderService._apply_status(order, requested, caller, "status_change", comments)
            else:
                changed = ", ".join(sorted(changes)) or "no fields"
                order.append_workflow_entry("updated", caller.id, comments or f"Updated {changed}")

            OrderService._save(order)

        logger.info(f"Updated work order {order.work_order_id} by {caller.id}")
        return order

    @staticmethod
    def update_status(caller: Caller, identifier, status: str, comments: str = None) -> Order:
        OrderService._ensure_known_status(status)

        with transaction.atomic():
            order = OrderService._find(caller, identifier, lock=True)
            try:
                ensure_transition(order.status, status)
            except WorkOrderError:
                logger.warning(f"Rejected transition {order.status} -> {status} on {order.work_order_id} by {caller.id}")
                raise

            OrderService._apply_status(order, status, caller, "status_change", comments)
            OrderService._save(order)

        return order

    @staticmethod
    def bulk_update_status(caller: Caller, identifiers: list, status: str, comments: str = None) -> BulkResult:
        """
        Apply a status change to each order independently

        Orders that are missing, outside the caller's scope or that fail the
        transition guard are skipped and counted, never raised.
        """
        OrderService._ensure_known_status(status)

        updated = 0
        for identifier in identifiers:
            try:
                with transaction.atomic():
                    order = OrderService._find(caller, identifier, lock=True)
                    ensure_transition(order.status, status)
                    OrderService._apply_status(order, status, caller, "bulk_status_change", comments, bulk=True)
                    OrderService._save(order)
                updated += 1
            except WorkOrderError as e:
                logger.info(f"Skipped {identifier} in bulk status change: {e}")

        result = BulkResult(requested=len(identifiers), updated=updated, skipped=len(identifiers) - updated)
        logger.info(
            f"Bulk status change to {status} by {caller.id}: "
            f"{result.requested} requested, {result.updated} updated, {result.skipped} skipped"
        )
        return result

    @staticmethod
    def delete_order(caller: Caller, identifier) -> None:
        with transaction.atomic():
            order = OrderService._find(caller, identifier, lock=True)
            label = order.work_order_id
            try:
                order.delete()
            except DatabaseError as e:
                logger.error(f"Failed to delete work order {label}: {e}")
                raise PersistenceError("Failed to delete work order", cause=e) from e

        logger.info(f"Deleted work order {label} by {caller.id}")

    @staticmethod
    def add_images(caller: Caller, identifier, urls: list) -> Order:
        invalid = [url for url in urls if not IMAGE_URL_PATTERN.match(str(url))]
        if invalid:
            raise ValidationFailed.for_field("image_urls", "Invalid image URL format")

        limit = settings.WORK_ORDERS["MAX_IMAGES_PER_ORDER"]

        with transaction.atomic():
            order = OrderService._find(caller, identifier, lock=True)

            images = [*(order.image_urls or []), *urls]
            if len(images) > limit:
                raise ValidationFailed.for_field("image_urls", f"Cannot have more than {limit} images")

            order.image_urls = images
            order.last_modified_by = caller.id
            order.append_workflow_entry("images_added", caller.id, f"Added {len(urls)} image(s)")
            OrderService._save(order)

        return order

    @staticmethod
    def bulk_import(caller: Caller, rows: list) -> ImportResult:
        """
        Import CSV rows as new work orders (admins and managers only)

        Each row is saved in its own savepoint; a failing row is reported
        with its 1-based row number and does not stop the import.
        """
        OrderService._require_admin_or_manager(caller, "Only admins and managers can bulk import work orders")

        logger.info(f"User {caller.id} ({caller.role}) importing {len(rows)} work orders")
        result = ImportResult(total=len(rows))

        for row_number, row in enumerate(rows, start=1):
            try:
                payload = map_import_row(row, row_number)
                work_order_id = payload.pop("work_order_id", None)
                if work_order_id and Order.objects.filter(work_order_id=work_order_id).exists():
                    raise ValueError(f"Row {row_number}: work order ID {work_order_id} already exists")

                order = OrderService._build(caller, payload)
                if work_order_id:
                    order.work_order_id = work_order_id
                order.append_workflow_entry("created", caller.id, "Imported from CSV")

                with transaction.atomic():
                    OrderService._save(order)
                    if work_order_id:
                        OrderService._reserve_work_order_id(work_order_id)

                result.orders.append(order)
                result.successful += 1

            except ValidationFailed as e:
                messages = "; ".join(f"{err['field']}: {err['message']}" for err in e.errors)
                OrderService._record_import_failure(result, row_number, f"Row {row_number}: {messages}")
            except (ValueError, PersistenceError) as e:
                OrderService._record_import_failure(result, row_number, str(e))

        logger.info(f"Bulk import completed: {result.successful} successful, {result.failed} failed")
        return result

    @staticmethod
    def delete_all(caller: Caller, confirm_phrase: str) -> dict:
        OrderService._require_admin_or_manager(caller, "Only administrators and managers can delete all work orders.")

        required = settings.WORK_ORDERS["DELETE_ALL_PHRASE"]
        if (confirm_phrase or "").strip().upper() != required.upper():
            raise ValidationFailed.for_field(
                "confirm_phrase", f'Confirmation phrase required. Please type "{required}" exactly to confirm.'
            )

        logger.warning(f"{caller.role} {caller.full_name} ({caller.id}) is deleting all work orders")

        with transaction.atomic():
            total_before = Order.objects.count()
            try:
                deleted, _ = Order.objects.all().delete()
            except DatabaseError as e:
                logger.error(f"Failed to delete all work orders: {e}")
                raise PersistenceError("Failed to delete all work orders", cause=e) from e

        logger.warning(f"Deleted {deleted} work orders by {caller.role} {caller.id}")
        return {"deleted_count": deleted, "total_before": total_before}

    @staticmethod
    def stats(caller: Caller) -> dict:
        """Status/priority distribution, recent activity and creation counters"""
        visible = visible_orders(caller)

        now = timezone.localtime()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = today - timedelta(days=today.weekday())
        month_start = today.replace(day=1)

        return {
            "status_distribution": dict(visible.values_list("status").annotate(count=Count("pk")).order_by()),
            "priority_distribution": dict(visible.values_list("priority").annotate(count=Count("pk")).order_by()),
            "recent_activity": list(visible.order_by("-created_at")[:5]),
            "counters": {
                "today": visible.filter(created_at__gte=today).count(),
                "this_week": visible.filter(created_at__gte=week_start).count(),
                "this_month": visible.filter(created_at__gte=month_start).count(),
            },
            "total": visible.count(),
        }

    # helpers

    @staticmethod
    def _find(caller: Caller, identifier, lock: bool = False) -> Order:
        queryset = visible_orders(caller).filter(identifier_predicate(identifier))
        if lock:
            queryset = queryset.select_for_update()

        order = queryset.first()
        if order is None:
            logger.warning(f"Work order {identifier} not found for {caller.role} {caller.id}")
            raise NotFound(identifier)
        return order

    @staticmethod
    def _build(caller: Caller, payload: dict) -> Order:
        payload = normalize_hazard_flags(dict(payload))

        serializer = OrderWriteSerializer(data=payload)
        if not serializer.is_valid():
            raise ValidationFailed.from_serializer_errors(serializer.errors)

        return Order(
            **serializer.validated_data,
            user_id=caller.id,
            created_by=caller.id,
            last_modified_by=caller.id,
        )

    @staticmethod
    def _apply_status(order: Order, status: str, caller: Caller, action: str, comments: str = None, bulk: bool = False):
        previous = order.status
        now = timezone.now()

        order.status = status
        order.last_modified_by = caller.id

        if status == "completed":
            order.completed_date = now
        elif status == "approved":
            order.approved_by = caller.id
            order.approved_date = now

        default_comment = f"{'Bulk status' if bulk else 'Status'} changed from {previous} to {status}"
        order.append_workflow_entry(
            action,
            caller.id,
            comments or default_comment,
            previous_status=previous,
            new_status=status,
        )
        logger.info(f"Work order {order.work_order_id}: {previous} -> {status} by {caller.id}")

    @staticmethod
    def _save(order: Order) -> None:
        try:
            order.save()
        except DatabaseError as e:
            logger.error(f"Failed to save work order {order.internal_id}: {e}")
            raise PersistenceError(cause=e) from e

    @staticmethod
    def _reserve_work_order_id(work_order_id: str) -> None:
        try:
            reserve_work_order_id(work_order_id)
        except DatabaseError as e:
            logger.error(f"Failed to advance counter for imported work order ID {work_order_id}: {e}")
            raise PersistenceError(cause=e) from e

    @staticmethod
    def _ensure_known_status(status: str) -> None:
        if status not in STATUS_VALUES:
            raise ValidationFailed.for_field("status", "Status must be valid")

    @staticmethod
    def _require_admin_or_manager(caller: Caller, message: str) -> None:
        if not caller.sees_everything:
            raise AccessDenied(message)

    @staticmethod
    def _record_import_failure(result: ImportResult, row_number: int, message: str) -> None:
        result.failed += 1
        result.errors.append({"row": row_number, "error": message})
        logger.warning(f"Error importing row {row_number}: {message}")
