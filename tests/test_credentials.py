import pytest

from school_portal.core.exceptions import MalformedInputError
from school_portal.utils.credentials import (
    PASSWORD_SUFFIX_MAX,
    PASSWORD_SUFFIX_MIN,
    generate_credentials,
    generate_qr_token,
)


def test_username_is_lowercased_name_without_whitespace():
    creds = generate_credentials("Alice  Mary\tDoe")
    assert creds.username == "alicemarydoe"


def test_password_is_first_name_token_plus_suffix_in_range():
    for _ in range(200):
        creds = generate_credentials("Alice Doe")
        assert creds.password.startswith("Alice")
        suffix = int(creds.password[len("Alice"):])
        assert PASSWORD_SUFFIX_MIN <= suffix < PASSWORD_SUFFIX_MAX


def test_salt_is_appended_to_username():
    creds = generate_credentials("Alice Doe", salt="42")
    assert creds.username == "alicedoe42"
    assert creds.password.startswith("Alice")


@pytest.mark.parametrize("name", ["", "   ", "\t\n"])
def test_empty_name_is_rejected(name):
    with pytest.raises(MalformedInputError):
        generate_credentials(name)


def test_repr_hides_password():
    creds = generate_credentials("Bob")
    assert creds.password not in repr(creds)


def test_qr_tokens_are_distinct():
    tokens = {generate_qr_token() for _ in range(50)}
    assert len(tokens) == 50
