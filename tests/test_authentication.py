import json

import pytest

from school_portal.core.exceptions import InvalidCredentialsError, InvalidQRError
from school_portal.schemas.registration import ControllerRegistrationRequest
from school_portal.schemas.user import Role
from school_portal.utils.token_codec import build_student_login_payload

from conftest import student_request


@pytest.fixture
def alice(registration):
    return registration.register_student(student_request())


@pytest.fixture
def principal(registration):
    return registration.register_controller(
        ControllerRegistrationRequest(
            name="Head Teacher",
            email="head@example.com",
            username="principal",
            password="s3cret-pass",
        )
    )


def test_password_login_by_username(auth, alice, codec, store):
    result = auth.login_password("alicedoe", alice.credentials.password, Role.STUDENT)

    claims = codec.decode_session_token(result.token)
    assert claims.id == alice.record.id
    assert claims.username == "alicedoe"
    assert claims.role == Role.STUDENT
    assert result.user.last_login is not None
    assert store.students.find_by_id(alice.record.id).last_login == result.user.last_login


def test_password_login_wrong_password(auth, alice):
    with pytest.raises(InvalidCredentialsError):
        auth.login_password("alicedoe", "wrong", Role.STUDENT)


def test_unknown_user_and_wrong_password_look_the_same(auth, alice):
    with pytest.raises(InvalidCredentialsError) as unknown:
        auth.login_password("nobody", "wrong", Role.STUDENT)
    with pytest.raises(InvalidCredentialsError) as wrong:
        auth.login_password("alicedoe", "wrong", Role.STUDENT)
    assert str(unknown.value) == str(wrong.value)


def test_student_can_login_with_email(auth, alice):
    result = auth.login_password("alice@example.com", alice.credentials.password, Role.STUDENT)
    assert result.user.id == alice.record.id


def test_controller_login_has_no_email_fallback(auth, principal):
    with pytest.raises(InvalidCredentialsError):
        auth.login_password("head@example.com", "s3cret-pass", Role.CONTROLLER)
    result = auth.login_password("principal", "s3cret-pass", "primary")
    assert result.user.role == Role.CONTROLLER


def test_roles_never_cross(auth, alice, principal):
    with pytest.raises(InvalidCredentialsError):
        auth.login_password("principal", "s3cret-pass", Role.STUDENT)
    with pytest.raises(InvalidCredentialsError):
        auth.login_password("alicedoe", alice.credentials.password, Role.CONTROLLER)


def test_inactive_account_cannot_login(auth, alice, db):
    from school_portal.models.student import StudentModel

    db.query(StudentModel).update({"is_active": False})
    db.commit()
    with pytest.raises(InvalidCredentialsError):
        auth.login_password("alicedoe", alice.credentials.password, Role.STUDENT)


def test_qr_login_with_stored_token(auth, alice, codec):
    result = auth.login_qr(alice.qr_token, Role.STUDENT)
    claims = codec.decode_session_token(result.token)
    assert claims.id == alice.record.id
    assert result.user.last_login is not None


def test_qr_login_with_registration_payload(auth, alice):
    result = auth.login_qr(alice.qr_payload, Role.STUDENT)
    assert result.user.username == "alicedoe"


def test_qr_login_with_student_card_payload(auth, alice, codec):
    payload = build_student_login_payload(
        "alicedoe", alice.credentials.password, alice.record.id, "Alice Doe", "7", "B"
    )
    result = auth.login_qr(codec.encode_qr_payload(payload), Role.STUDENT)
    assert result.user.id == alice.record.id


def test_qr_and_password_tokens_have_same_shape(auth, alice, codec):
    by_password = codec.decode_session_token(
        auth.login_password("alicedoe", alice.credentials.password, Role.STUDENT).token
    )
    by_qr = codec.decode_session_token(auth.login_qr(alice.qr_token, Role.STUDENT).token)
    assert by_password == by_qr


def test_qr_payload_with_wrong_password_fails(auth, alice):
    forged = json.dumps({"type": "login", "username": "alicedoe", "password": "guess", "role": "student"})
    with pytest.raises(InvalidQRError):
        auth.login_qr(forged, Role.STUDENT)


def test_qr_payload_for_other_role_fails(auth, alice):
    with pytest.raises(InvalidQRError):
        auth.login_qr(alice.qr_payload, Role.CONTROLLER)


@pytest.mark.parametrize("value", ["unknown-token", "{not json", json.dumps({"username": "alicedoe"})])
def test_unusable_qr_values_fail(auth, alice, value):
    with pytest.raises(InvalidQRError):
        auth.login_qr(value, Role.STUDENT)


def test_controller_qr_login(auth, principal):
    result = auth.login_qr(principal.qr_token, Role.CONTROLLER)
    assert result.user.username == "principal"
    with pytest.raises(InvalidQRError):
        auth.login_qr(principal.qr_token, Role.STUDENT)
