import pytest
from django.core.management import call_command
from rest_framework_simplejwt.tokens import AccessToken

from apps.authentication.identity import Caller
from apps.authentication.models import User

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db

SIGNUP_URL = "/api/v1/auth/signup/"
LOGIN_URL = "/api/v1/auth/login/"


def _signup_payload(**overrides):
    payload = {
        "email": "Jane.Doe@Example.com",
        "password": PASSWORD,
        "first_name": "jane",
        "last_name": "doe",
        "role": "technician",
    }
    payload.update(overrides)
    return payload


def test_signup_creates_technician(api_client):
    response = api_client.post(SIGNUP_URL, _signup_payload(), format="json")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["user"]["email"] == "jane.doe@example.com"
    assert data["user"]["full_name"] == "Jane Doe"
    assert data["access"] and data["refresh"]


def test_signup_rejects_common_password(api_client):
    response = api_client.post(SIGNUP_URL, _signup_payload(password="password"), format="json")

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "password"


def test_signup_rejects_duplicate_email(api_client, make_user):
    make_user(email="jane.doe@example.com")

    response = api_client.post(SIGNUP_URL, _signup_payload(), format="json")

    assert response.status_code == 400


def test_anonymous_cannot_create_manager(api_client):
    response = api_client.post(SIGNUP_URL, _signup_payload(role="manager"), format="json")

    assert response.status_code == 403
    assert not User.objects.filter(email="jane.doe@example.com").exists()


def test_admin_can_create_manager(client_for, admin_user):
    response = client_for(admin_user).post(SIGNUP_URL, _signup_payload(role="manager"), format="json")

    assert response.status_code == 201
    assert User.objects.get(email="jane.doe@example.com").role == "manager"


def test_login_issues_tokens_with_identity_claims(api_client, technician_user):
    response = api_client.post(LOGIN_URL, {"email": technician_user.email, "password": PASSWORD}, format="json")

    assert response.status_code == 200
    token = AccessToken(response.json()["data"]["access"])
    assert token["role"] == "technician"
    assert token["first_name"] == "Jane"
    assert token["last_name"] == "Doe"


def test_login_with_wrong_password(api_client, technician_user):
    response = api_client.post(LOGIN_URL, {"email": technician_user.email, "password": "nope-nope"}, format="json")

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_bearer_token_reaches_order_endpoints(api_client, technician_user):
    login = api_client.post(LOGIN_URL, {"email": technician_user.email, "password": PASSWORD}, format="json")
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.json()['data']['access']}")

    response = api_client.get("/api/v1/orders/")

    assert response.status_code == 200


def test_user_list_is_admin_or_manager_only(client_for, plain_user, manager_user, technician_user):
    assert client_for(plain_user).get("/api/v1/auth/users/").status_code == 403

    response = client_for(manager_user).get("/api/v1/auth/users/", {"role": "technician"})

    assert response.status_code == 200
    results = response.json()["data"]["results"]
    assert [u["email"] for u in results] == [technician_user.email]


def test_caller_from_user(technician_user):
    caller = Caller.from_user(technician_user)

    assert caller.id == str(technician_user.pk)
    assert caller.role == "technician"
    assert caller.full_name == "Jane Doe"
    assert not caller.sees_everything


def test_migrations_match_models(settings):
    # addopts disables migration modules; restore them so the files on disk are compared
    settings.MIGRATION_MODULES = {}

    call_command("makemigrations", "--check", "--dry-run", verbosity=0)
