from __future__ import annotations

from forestwatch._redact import redact_for_log, redact_url


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "temperature": 21,
        "auth": "db-secret",
        "nested": {"idToken": "eyJ...", "gas": 100},
        "readings": [{"password": "pw"}],
    }

    redacted = redact_for_log(payload)
    assert redacted["temperature"] == 21
    assert redacted["auth"] == "<redacted>"
    assert redacted["nested"]["idToken"] == "<redacted>"
    assert redacted["nested"]["gas"] == 100
    assert redacted["readings"][0]["password"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_summarizes_bytes() -> None:
    assert redact_for_log(b"\x00\x01\x02") == "<bytes:3b>"


def test_redact_url_masks_auth_query() -> None:
    url = "https://db.example.com/forest_devices.json?auth=SECRET&print=silent"
    assert redact_url(url) == "https://db.example.com/forest_devices.json?auth=<redacted>&print=silent"


def test_redact_url_without_auth_is_unchanged() -> None:
    url = "https://db.example.com/forest_devices.json"
    assert redact_url(url) == url
