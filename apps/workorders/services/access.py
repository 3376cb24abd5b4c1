"""
Visibility rules for work orders

Every read and write goes through `visible_orders`, which ANDs the caller's
scope with any request filters. Keep it that way so list, lookup, update,
status changes and deletes can never disagree about what a caller may touch.
"""
import uuid
from dataclasses import dataclass
from datetime import date
from functools import reduce
from operator import or_
from typing import Optional

from django.db.models import Q

from apps.authentication.identity import ROLE_TECHNICIAN, Caller
from apps.workorders.models import Order

SEARCH_FIELDS = (
    "space_name",
    "building",
    "location_description",
    "technician",
    "unique_id",
    "work_order_id",
)

MATCH_NOTHING = Q(pk__in=[])


class TechnicianNameMatcher:
    """Strategy deciding which `Order.technician` values belong to a technician"""

    def predicate(self, first_name: str, last_name: str) -> Q:
        raise NotImplementedError


class FuzzyNameMatcher(TechnicianNameMatcher):
    """
    Case-insensitive substring match on "First Last", "Last, First",
    "Last First" and the first name alone

    `technician` is free text, not a foreign key, so this is deliberately
    permissive: two technicians sharing a first name see each other's orders.
    """

    def patterns(self, first_name: str, last_name: str) -> list:
        first = (first_name or "").strip()
        last = (last_name or "").strip()

        if first and last:
            candidates = [f"{first} {last}", f"{last}, {first}", f"{last} {first}", first]
        else:
            candidates = [first or last]

        # dict keeps order while dropping duplicates and empties
        return list(dict.fromkeys(p for p in candidates if p))

    def predicate(self, first_name: str, last_name: str) -> Q:
        patterns = self.patterns(first_name, last_name)
        if not patterns:
            return MATCH_NOTHING
        return reduce(or_, (Q(technician__icontains=p) for p in patterns))


DEFAULT_MATCHER = FuzzyNameMatcher()


@dataclass
class OrderFilters:
    status: Optional[str] = None
    priority: Optional[str] = None
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


def scope_predicate(caller: Caller, matcher: TechnicianNameMatcher = None) -> Q:
    if caller.sees_everything:
        return Q()

    if caller.role == ROLE_TECHNICIAN:
        return (matcher or DEFAULT_MATCHER).predicate(caller.first_name, caller.last_name)

    return Q(user_id=caller.id)


def identifier_predicate(identifier) -> Q:
    """Match an order by internal UUID, unique id or work order id"""
    value = str(identifier).strip()
    if not value:
        return MATCH_NOTHING

    predicate = Q(unique_id=value) | Q(work_order_id=value)

    if value.isdigit() and len(value) < 4:
        predicate |= Q(unique_id=value.zfill(4))

    try:
        predicate |= Q(internal_id=uuid.UUID(value))
    except ValueError:
        pass

    return predicate


def filter_predicate(filters: Optional[OrderFilters]) -> Q:
    if filters is None:
        return Q()

    predicate = Q()

    if filters.status:
        predicate &= Q(status=filters.status)

    if filters.priority:
        predicate &= Q(priority=filters.priority)

    search = (filters.search or "").strip()
    if search:
        predicate &= reduce(or_, (Q(**{f"{field}__icontains": search}) for field in SEARCH_FIELDS))

    if filters.date_from:
        predicate &= Q(survey_date__gte=filters.date_from)

    if filters.date_to:
        predicate &= Q(survey_date__lte=filters.date_to)

    return predicate


def visible_orders(caller: Caller, filters: Optional[OrderFilters] = None, matcher: TechnicianNameMatcher = None):
    return Order.objects.filter(scope_predicate(caller, matcher) & filter_predicate(filters))
