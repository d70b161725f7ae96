"""
Tests for shared validators.
"""

import pytest

from easemail.shared.validators import (
    is_valid_email,
    slugify,
    validate_email,
    validate_http_url,
    validate_required_text,
)


@pytest.mark.parametrize("email", ["a@b.co", "first.last+tag@sub.acme.com"])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["", None, "plain", "a@b", "a b@acme.com", 42, ["a@acme.com"]])
def test_invalid_emails(email):
    assert not is_valid_email(email)


def test_validate_email_normalises():
    assert validate_email("  Jane@Acme.COM ") == "jane@acme.com"
    with pytest.raises(ValueError):
        validate_email("nope")


def test_http_urls_only():
    assert validate_http_url(" https://hooks.acme.com/x ") == "https://hooks.acme.com/x"
    for url in ["ftp://acme.com", "acme.com/hook", "https://"]:
        with pytest.raises(ValueError):
            validate_http_url(url)


def test_required_text():
    assert validate_required_text("  Acme ", "Name") == "Acme"
    with pytest.raises(ValueError, match="Name is required"):
        validate_required_text("   ", "Name")


def test_slugify():
    assert slugify("  Acme & Sons, Ltd. ") == "acme-sons-ltd"
