import pytest
from fastapi.testclient import TestClient

from helpers import AM, DEV, USER, make_settings
from offerdesk.auth import CredentialRegistry, Role
from offerdesk.main import create_app


@pytest.fixture
def sql_client(tmp_path):
    with TestClient(create_app(make_settings(tmp_path))) as c:
        yield c


def test_missing_credential_is_401(sql_client):
    r = sql_client.get("/customers")
    assert r.status_code == 401
    assert r.json() == {"message": "Unauthorized: missing credential"}


def test_blank_credential_is_401(sql_client):
    r = sql_client.get("/offers", headers={"Authorization": "   "})
    assert r.status_code == 401


def test_unknown_credential_is_403(sql_client):
    r = sql_client.get("/customers", headers={"Authorization": "Basic Intruder"})
    assert r.status_code == 403
    assert r.json() == {"message": "Forbidden: unknown credential"}


@pytest.mark.parametrize(
    "method,path,headers",
    [
        ("post", "/customers", USER),
        ("delete", "/customers/1", DEV),
        ("delete", "/offers/1", USER),
        ("patch", "/offers/1/status", DEV),
        ("put", "/offers/1/comments/1", USER),
    ],
)
def test_role_outside_allowed_set_is_403(sql_client, method, path, headers):
    r = sql_client.request(method, path, headers=headers, json={"name": "x", "newStatus": "Active", "text": "x"})
    assert r.status_code == 403
    assert r.json() == {"message": "Forbidden: insufficient permissions"}


def test_auth_is_checked_before_existence(sql_client):
    # no record 77 exists, but a User may not delete customers at all
    r = sql_client.delete("/customers/77", headers=USER)
    assert r.status_code == 403
    assert sql_client.delete("/customers/77", headers=AM).status_code == 404


def test_health_needs_no_credential(sql_client):
    assert sql_client.get("/health").json() == {"ok": True}


def test_registry_resolves_configured_credentials():
    registry = CredentialRegistry({"Bearer abc": "Developer"})
    assert registry.resolve(" Bearer abc ") is Role.DEVELOPER
    assert registry.resolve("Basic Developer") is None
    assert registry.resolve(None) is None


def test_registry_rejects_unknown_role_names():
    with pytest.raises(ValueError):
        CredentialRegistry({"Basic Root": "Root"})


def test_custom_credentials_from_settings(tmp_path):
    cfg = make_settings(tmp_path, ROLE_CREDENTIALS={"Token am-1": "Account-Manager"})
    with TestClient(create_app(cfg)) as c:
        assert c.get("/customers", headers={"Authorization": "Token am-1"}).status_code == 200
        assert c.get("/customers", headers=AM).status_code == 403
