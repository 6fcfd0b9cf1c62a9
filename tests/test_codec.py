from __future__ import annotations

import json

import pytest

from pyfarmbot import commands
from pyfarmbot._constants import Topics
from pyfarmbot.codec import JsonCodec
from pyfarmbot.exceptions import FarmbotMalformedMessageError
from pyfarmbot.ingestion.normalize import expand_path
from pyfarmbot.models.messages import MessageKind, RpcRequest, RpcRequestArgs


@pytest.fixture
def codec(topics: Topics) -> JsonCodec:
    return JsonCodec(topics)


def test_encode_is_compact_json(codec: JsonCodec) -> None:
    request = RpcRequest(args=RpcRequestArgs(label="abc"), body=[commands.emergency_lock()])

    raw = codec.encode(request)

    assert b" " not in raw
    assert json.loads(raw) == {
        "kind": "rpc_request",
        "args": {"label": "abc", "priority": 600},
        "body": [{"kind": "emergency_lock", "args": {}}],
    }


def test_status_topic_is_full_snapshot(codec: JsonCodec) -> None:
    message = codec.decode("bot/device_42/status", b'{"user_env": {"A": "1"}}')

    assert message.kind is MessageKind.STATUS
    assert message.payload == {"user_env": {"A": "1"}}
    assert message.correlation_id is None


def test_upsert_topic_expands_dotted_path(codec: JsonCodec) -> None:
    message = codec.decode("bot/device_42/status_v8/upsert/location_data.position", b'{"x": 1, "y": 2}')

    assert message.kind is MessageKind.STATUS_DELTA
    assert message.payload == {"location_data": {"position": {"x": 1, "y": 2}}}


def test_upsert_scalar_leaf(codec: JsonCodec) -> None:
    message = codec.decode("bot/device_42/status_v8/upsert/informational_settings.busy", b"true")

    assert message.payload == {"informational_settings": {"busy": True}}


def test_jobs_upsert_is_job_progress(codec: JsonCodec) -> None:
    message = codec.decode(
        "bot/device_42/status_v8/upsert/jobs.FBOS_OTA",
        b'{"status": "working", "unit": "percent", "percent": 12}',
    )

    assert message.kind is MessageKind.JOB_PROGRESS
    assert message.payload == {"jobs": {"FBOS_OTA": {"status": "working", "unit": "percent", "percent": 12}}}


def test_reply_carries_label_as_correlation_id(codec: JsonCodec) -> None:
    ok = codec.decode("bot/device_42/from_device", b'{"kind": "rpc_ok", "args": {"label": "abc"}}')
    error = codec.decode("bot/device_42/from_device", b'{"kind": "rpc_error", "args": {"label": "def"}}')

    assert (ok.kind, ok.correlation_id) == (MessageKind.RPC_OK, "abc")
    assert (error.kind, error.correlation_id) == (MessageKind.RPC_ERROR, "def")


def test_logs_topic(codec: JsonCodec) -> None:
    message = codec.decode("bot/device_42/logs", b'{"message": "hello", "type": "info"}')

    assert message.kind is MessageKind.LOG


@pytest.mark.parametrize(
    ("topic", "payload"),
    [
        ("bot/device_42/status", b"not json"),
        ("bot/device_42/status", b"[1, 2]"),
        ("bot/device_42/status", b"\xff\xfe"),
        ("bot/device_42/status_v8/upsert/", b"42"),
        ("bot/device_42/from_device", b'{"kind": "rpc_request", "args": {"label": "x"}}'),
        ("bot/device_42/from_device", b'{"kind": "rpc_ok", "args": {}}'),
        ("bot/device_42/from_device", b'{"kind": "rpc_ok", "args": {"label": ""}}'),
        ("bot/device_42/from_device", b'{"kind": "rpc_ok"}'),
        ("bot/device_42/sync/Point/1", b"{}"),
        ("bot/device_99/status", b"{}"),
    ],
)
def test_malformed_or_unknown_deliveries_raise(codec: JsonCodec, topic: str, payload: bytes) -> None:
    with pytest.raises(FarmbotMalformedMessageError) as excinfo:
        codec.decode(topic, payload)

    assert excinfo.value.topic == topic


def test_expand_path_ignores_stray_dots() -> None:
    assert expand_path(".a..b.", 1) == {"a": {"b": 1}}
    assert expand_path("", {"a": 1}) == {"a": 1}


def test_named_keys_keep_their_dots(codec: JsonCodec) -> None:
    job = codec.decode(
        "bot/device_42/status_v8/upsert/jobs.Install foo-1.2.zip",
        b'{"status": "working", "unit": "bytes", "bytes": 512}',
    )
    env = codec.decode("bot/device_42/status_v8/upsert/user_env.camera.resolution", b'"640x480"')

    assert job.kind is MessageKind.JOB_PROGRESS
    assert job.payload == {"jobs": {"Install foo-1.2.zip": {"status": "working", "unit": "bytes", "bytes": 512}}}
    assert env.payload == {"user_env": {"camera.resolution": "640x480"}}


def test_expand_path_named_sections() -> None:
    assert expand_path("process_info.farmwares.weed-detector.v2", {}) == {
        "process_info": {"farmwares": {"weed-detector.v2": {}}}
    }
    assert expand_path("jobs", {"a": 1}) == {"jobs": {"a": 1}}
