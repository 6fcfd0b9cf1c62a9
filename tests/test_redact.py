from __future__ import annotations

from pyfarmbot._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "kind": "rpc_request",
        "token": {"encoded": "eyJ...", "unencoded": {"bot": "device_42"}},
        "password": "pw",
        "nested": {"Authorization": "Bearer abc", "encoded": "eyJ..."},
    }

    redacted = redact_for_log(payload)
    assert redacted["kind"] == "rpc_request"
    assert redacted["password"] == "<redacted>"
    assert redacted["token"] == "<redacted>"
    assert redacted["nested"]["Authorization"] == "<redacted>"
    assert redacted["nested"]["encoded"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_truncates_large_collections() -> None:
    pins = {str(n): {"mode": 0, "value": n} for n in range(20)}

    redacted = redact_for_log({"pins": pins, "body": list(range(20))}, max_items=5)

    assert len(redacted["pins"]) == 6
    assert redacted["pins"]["…"] == "<15 more>"
    assert redacted["body"] == [0, 1, 2, 3, 4, "<15 more>"]


def test_redact_for_log_summarizes_bytes() -> None:
    assert redact_for_log(b"\x00" * 32) == "<bytes:32b>"
