from __future__ import annotations

import asyncio
import json
import logging

import pytest

from pyfarmbot._client.correlator import Correlator
from pyfarmbot._constants import Topics
from pyfarmbot.codec import JsonCodec
from pyfarmbot.exceptions import FarmbotDeviceError
from pyfarmbot.ingestion.router import IngressRouter
from pyfarmbot.models.messages import DeviceLog, RpcReply
from pyfarmbot.models.state import PercentageProgress, StateTree
from pyfarmbot.state.store import StateStore


def _raw(payload: object) -> bytes:
    return json.dumps(payload).encode()


@pytest.fixture
def store() -> StateStore:
    return StateStore()


@pytest.fixture
def correlator() -> Correlator:
    return Correlator()


@pytest.fixture
def router(topics: Topics, store: StateStore, correlator: Correlator) -> IngressRouter:
    return IngressRouter(codec=JsonCodec(topics), store=store, correlator=correlator)


def test_delta_merges_into_store(router: IngressRouter, store: StateStore) -> None:
    router.handle("bot/device_42/status_v8/upsert/pins.13", _raw({"mode": 0, "value": 1}))

    assert store.snapshot().pins[13].value == 1


def test_job_progress_merges_into_jobs(router: IngressRouter, store: StateStore) -> None:
    router.handle(
        "bot/device_42/status_v8/upsert/jobs.Camera",
        _raw({"status": "working", "unit": "percent", "percent": 50}),
    )

    job = store.snapshot().jobs["Camera"]
    assert isinstance(job, PercentageProgress)
    assert job.percent == 50


def test_full_status_goes_to_snapshot_handler(topics: Topics, store: StateStore, correlator: Correlator) -> None:
    received: list[StateTree] = []
    router = IngressRouter(codec=JsonCodec(topics), store=store, correlator=correlator, on_snapshot=received.append)

    router.handle("bot/device_42/status", _raw({"user_env": {"A": "1"}}))

    assert [tree.user_env for tree in received] == [{"A": "1"}]
    assert store.version == 0


def test_full_status_replaces_by_default(router: IngressRouter, store: StateStore) -> None:
    store.merge({"user_env": {"OLD": "1"}})

    router.handle("bot/device_42/status", _raw({"user_env": {"NEW": "2"}}))

    assert store.snapshot().user_env == {"NEW": "2"}


@pytest.mark.asyncio
async def test_rpc_ok_resolves_pending_command(router: IngressRouter, correlator: Correlator) -> None:
    future = correlator.register("abc")

    router.handle("bot/device_42/from_device", _raw({"kind": "rpc_ok", "args": {"label": "abc"}}))

    reply = await future
    assert isinstance(reply, RpcReply)
    assert reply.label == "abc"


@pytest.mark.asyncio
async def test_rpc_error_rejects_with_explanations(router: IngressRouter, correlator: Correlator) -> None:
    future = correlator.register("abc")

    router.handle(
        "bot/device_42/from_device",
        _raw(
            {
                "kind": "rpc_error",
                "args": {"label": "abc"},
                "body": [
                    {"kind": "explanation", "args": {"message": "Movement failed"}},
                    {"kind": "unrelated", "args": {}},
                ],
            }
        ),
    )

    with pytest.raises(FarmbotDeviceError) as excinfo:
        await future
    assert excinfo.value.explanations == ("Movement failed",)


@pytest.mark.asyncio
async def test_rpc_error_without_explanations(router: IngressRouter, correlator: Correlator) -> None:
    future = correlator.register("abc")

    router.handle("bot/device_42/from_device", _raw({"kind": "rpc_error", "args": {"label": "abc"}}))

    with pytest.raises(FarmbotDeviceError, match="no explanation given"):
        await future


def test_reply_for_unknown_command_is_dropped(router: IngressRouter, correlator: Correlator) -> None:
    router.handle("bot/device_42/from_device", _raw({"kind": "rpc_ok", "args": {"label": "ghost"}}))

    assert len(correlator) == 0


def test_logs_reach_listeners(router: IngressRouter) -> None:
    logs: list[DeviceLog] = []
    unsubscribe = router.subscribe_logs(logs.append)

    router.handle("bot/device_42/logs", _raw({"message": "Moving to (1, 2, 3)", "type": "busy", "x": 1}))
    unsubscribe()
    router.handle("bot/device_42/logs", _raw({"message": "ignored"}))

    assert [(log.message, log.type, log.x) for log in logs] == [("Moving to (1, 2, 3)", "busy", 1.0)]


def test_failing_log_listener_does_not_stop_others(router: IngressRouter) -> None:
    logs: list[DeviceLog] = []

    def broken(_log: DeviceLog) -> None:
        raise RuntimeError("boom")

    router.subscribe_logs(broken)
    router.subscribe_logs(logs.append)

    router.handle("bot/device_42/logs", _raw({"message": "hi"}))

    assert len(logs) == 1


@pytest.mark.parametrize(
    ("topic", "payload"),
    [
        ("bot/device_42/status", b"{{{"),
        ("bot/device_42/status", _raw({"pins": {"1": {"mode": "digital"}}})),
        ("bot/device_42/status_v8/upsert/pins.1", _raw({"value": "x"})),
        ("bot/device_42/logs", _raw({"type": "info"})),
        ("bot/device_42/unknown", b"{}"),
        ("bot/device_42/from_device", _raw({"kind": "rpc_ok"})),
    ],
)
def test_bad_deliveries_are_logged_and_dropped(
    router: IngressRouter,
    store: StateStore,
    topic: str,
    payload: bytes,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.WARNING, logger="pyfarmbot.ingestion.router")

    router.handle(topic, payload)

    assert store.version == 0
    assert any(record.levelno == logging.WARNING for record in caplog.records)


@pytest.mark.asyncio
async def test_bad_delivery_does_not_disturb_pending_commands(router: IngressRouter, correlator: Correlator) -> None:
    future = correlator.register("abc")

    router.handle("bot/device_42/status", b"garbage")
    router.handle("bot/device_42/from_device", _raw({"kind": "rpc_ok", "args": {"label": "abc"}}))

    assert (await asyncio.wait_for(future, 1)).ok


def test_job_with_dotted_name_is_merged(router: IngressRouter, store: StateStore) -> None:
    router.handle(
        "bot/device_42/status_v8/upsert/jobs.Install foo-1.2.zip",
        _raw({"status": "complete", "unit": "percent", "percent": 100}),
    )

    job = store.snapshot().jobs["Install foo-1.2.zip"]
    assert job.status == "complete"
