import pytest
import requests

from school_portal.core.exceptions import IdentityProviderError, OperationTimeoutError
from school_portal.utils.identity_directory import (
    InMemoryIdentityDirectory,
    SupabaseIdentityDirectory,
)

from conftest import FakeResponse


@pytest.fixture
def supabase():
    return SupabaseIdentityDirectory("https://project.supabase.co/", "service-key", timeout=3)


def test_create_account_posts_to_admin_api(supabase, monkeypatch):
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url, kwargs))
        return FakeResponse(200, {"id": "uuid-1", "email": "a@example.com"})

    monkeypatch.setattr(supabase.session, "request", fake_request)

    identity_id = supabase.create_account("a@example.com", "Alice123", {"role": "student"})

    assert identity_id == "uuid-1"
    method, url, kwargs = calls[0]
    assert method == "POST"
    assert url == "https://project.supabase.co/auth/v1/admin/users"
    assert kwargs["timeout"] == 3
    assert kwargs["json"]["email_confirm"] is True
    assert kwargs["json"]["user_metadata"] == {"role": "student"}
    assert supabase.session.headers["apikey"] == "service-key"


def test_create_account_accepts_wrapped_user(supabase, monkeypatch):
    monkeypatch.setattr(
        supabase.session, "request", lambda *a, **k: FakeResponse(200, {"user": {"id": "uuid-2"}})
    )
    assert supabase.create_account("b@example.com", "pw") == "uuid-2"


def test_rejection_maps_to_identity_provider_error(supabase, monkeypatch):
    monkeypatch.setattr(
        supabase.session,
        "request",
        lambda *a, **k: FakeResponse(422, {"msg": "User already registered"}),
    )
    with pytest.raises(IdentityProviderError, match="already registered"):
        supabase.create_account("a@example.com", "pw")


def test_non_json_success_maps_to_identity_provider_error(supabase, monkeypatch):
    html = FakeResponse(200, requests.JSONDecodeError("Expecting value", "<html>gateway</html>", 0))
    html.text = "<html>gateway</html>"
    monkeypatch.setattr(supabase.session, "request", lambda *a, **k: html)

    with pytest.raises(IdentityProviderError, match="non-JSON"):
        supabase.create_account("a@example.com", "pw")


def test_timeout_maps_to_operation_timeout(supabase, monkeypatch):
    def slow(*args, **kwargs):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(supabase.session, "request", slow)
    with pytest.raises(OperationTimeoutError):
        supabase.delete_account("uuid-1")


def test_delete_account_uses_account_url(supabase, monkeypatch):
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url))
        return FakeResponse(200, {})

    monkeypatch.setattr(supabase.session, "request", fake_request)
    supabase.delete_account("uuid-9")
    assert calls == [("DELETE", "https://project.supabase.co/auth/v1/admin/users/uuid-9")]


def test_in_memory_directory_enforces_email_uniqueness():
    directory = InMemoryIdentityDirectory()
    identity_id = directory.create_account("a@example.com", "pw")
    with pytest.raises(IdentityProviderError):
        directory.create_account("a@example.com", "pw")

    directory.delete_account(identity_id)
    assert not directory.has_account(identity_id)
    with pytest.raises(IdentityProviderError):
        directory.delete_account(identity_id)
