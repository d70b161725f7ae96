"""
Tests for {{placeholder}} personalisation.
"""

from datetime import datetime

from easemail.template_variables import (
    extract_variables,
    has_template_variables,
    replace_template_variables,
    variables_from_address,
    variables_from_contact,
)

NOW = datetime(2026, 3, 2, 14, 5, 9)


def test_replace_leaves_empty_values_in_place():
    text = "Hi {{firstName}} from {{company}}, {{firstName}}!"
    assert replace_template_variables(text, {"firstName": "Jane", "company": ""}) == (
        "Hi Jane from {{company}}, Jane!"
    )


def test_detect_and_extract():
    text = "{{firstName}} {{lastName}} {{firstName}}"
    assert has_template_variables(text)
    assert not has_template_variables("no braces here")
    assert not has_template_variables(None)
    assert extract_variables(text) == ["{{firstName}}", "{{lastName}}"]


def test_contact_variables():
    variables = variables_from_contact("jane@acme.com", "Jane", None, "Acme", now=NOW)
    assert variables == {
        "firstName": "Jane",
        "lastName": "",
        "fullName": "Jane",
        "email": "jane@acme.com",
        "company": "Acme",
        "date": "03/02/2026",
        "time": "02:05:09 PM",
    }


def test_nameless_contact_falls_back_to_email():
    assert variables_from_contact("x@acme.com", None, None, None, now=NOW)["fullName"] == "x@acme.com"


def test_address_variables():
    variables = variables_from_address("mary-jane.watson@daily.com", now=NOW)
    assert variables["firstName"] == "mary"
    assert variables["lastName"] == "jane watson"
    assert variables["fullName"] == "mary jane watson"
    assert variables["company"] == "daily.com"
