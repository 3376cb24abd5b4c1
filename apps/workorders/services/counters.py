import logging
import re

from django.db import IntegrityError, transaction
from django.db.models import F
from django.db.models.functions import Greatest
from django.utils import timezone

from apps.workorders.models import Counter

logger = logging.getLogger(__name__)

ORDER_SEQUENCE_KEY = "orderId"

WORK_ORDER_ID_PATTERN = re.compile(r"^WO-(\d{4})-(\d{2})-(\d+)$")


def work_order_counter_key(moment) -> str:
    return f"workorder_{moment:%Y}_{moment:%m}"


def format_work_order_id(moment, seq: int) -> str:
    return f"WO-{moment:%Y}-{moment:%m}-{seq:04d}"


def format_unique_id(seq: int) -> str:
    return f"{seq:04d}"


def parse_work_order_id(value: str):
    """Return (counter key, sequence) for a WO-YYYY-MM-NNNN id, or None for any other shape"""
    match = WORK_ORDER_ID_PATTERN.match(str(value or "").strip())
    if not match:
        return None
    year, month, seq = match.groups()
    return f"workorder_{year}_{month}", int(seq)


def _increment(key: str) -> int:
    return Counter.objects.filter(key=key).update(seq=F("seq") + 1, updated_at=timezone.now())


@transaction.atomic
def next_sequence(key: str) -> int:
    """
    Atomically increment the counter for `key` and return the new value

    The increment is a single UPDATE ... SET seq = seq + 1, so the row stays
    locked until the surrounding transaction ends and concurrent callers can
    never read the same value. The row is created on first use.
    """
    if not _increment(key):
        try:
            with transaction.atomic():
                Counter.objects.create(key=key, seq=1)
            return 1
        except IntegrityError:
            # another transaction created the row first
            _increment(key)

    return Counter.objects.filter(key=key).values_list("seq", flat=True).get()


@transaction.atomic
def raise_sequence(key: str, floor: int) -> None:
    """
    Move the counter for `key` up to at least `floor`; never moves it down

    Used when an order arrives with an externally assigned id so the next
    generated id cannot collide with it.
    """
    now = timezone.now()
    if Counter.objects.filter(key=key).update(seq=Greatest(F("seq"), floor), updated_at=now):
        return

    try:
        with transaction.atomic():
            Counter.objects.create(key=key, seq=floor)
    except IntegrityError:
        # another transaction created the row first
        Counter.objects.filter(key=key).update(seq=Greatest(F("seq"), floor), updated_at=now)


def reserve_work_order_id(work_order_id: str) -> None:
    """Advance the monthly counter past an imported WO-YYYY-MM-NNNN id"""
    parsed = parse_work_order_id(work_order_id)
    if parsed is None:
        return

    key, seq = parsed
    raise_sequence(key, seq)
    logger.info(f"Counter {key} raised to at least {seq} for imported work order ID {work_order_id}")


def assign_identifiers(order) -> None:
    """
    Give an order its human-readable identifiers if it lacks them

    Existing identifiers are left untouched; counter failures propagate and
    abort the save.
    """
    if order.work_order_id and order.unique_id:
        return

    moment = timezone.now()

    if not order.work_order_id:
        seq = next_sequence(work_order_counter_key(moment))
        order.work_order_id = format_work_order_id(moment, seq)
        logger.info(f"Generated work order ID {order.work_order_id}")

    if not order.unique_id:
        order.unique_id = format_unique_id(next_sequence(ORDER_SEQUENCE_KEY))
