"""
Shared fixtures: users for every role, their service callers, an order
payload factory and authenticated API clients.
"""
from datetime import date

import pytest
from rest_framework.test import APIClient

from apps.authentication.identity import Caller
from apps.authentication.models import User
from apps.workorders.models import HAZARD_FLAGS
from apps.workorders.services import OrderService

PASSWORD = "Sturdy-Passphrase-2024"


@pytest.fixture
def make_user(db):
    """Factory fixture: create a user with the given role and name."""
    def _make(role="user", first_name="Sam", last_name="Example", email=None):
        email = email or f"{first_name}.{last_name}.{role}@example.com".lower()
        return User.objects.create_user(
            email=email,
            password=PASSWORD,
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user(role="admin", first_name="Ada", last_name="Admin")


@pytest.fixture
def manager_user(make_user):
    return make_user(role="manager", first_name="Max", last_name="Manager")


@pytest.fixture
def technician_user(make_user):
    return make_user(role="technician", first_name="Jane", last_name="Doe")


@pytest.fixture
def plain_user(make_user):
    return make_user(role="user", first_name="Uma", last_name="User")


@pytest.fixture
def other_user(make_user):
    return make_user(role="user", first_name="Otto", last_name="Other")


@pytest.fixture
def admin(admin_user):
    return Caller.from_user(admin_user)


@pytest.fixture
def manager(manager_user):
    return Caller.from_user(manager_user)


@pytest.fixture
def technician(technician_user):
    return Caller.from_user(technician_user)


@pytest.fixture
def user(plain_user):
    return Caller.from_user(plain_user)


@pytest.fixture
def other(other_user):
    return Caller.from_user(other_user)


@pytest.fixture
def order_payload():
    """Factory fixture: a valid create payload with overrides applied."""
    def _make(**overrides):
        payload = {
            "technician": "Jane Doe",
            "space_name": "Pump Vault 3",
            "building": "B-12",
            "location_description": "North side of the boiler room",
            "survey_date": date(2024, 5, 14).isoformat(),
            "priority": "medium",
        }
        payload.update({flag: False for flag in HAZARD_FLAGS})
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def make_order(order_payload):
    """Factory fixture: create an order through the service."""
    def _make(caller, **overrides):
        return OrderService.create_order(caller, order_payload(**overrides))
    return _make


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    """Factory fixture: an APIClient authenticated as the given user."""
    def _make(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _make
