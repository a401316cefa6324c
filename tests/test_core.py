"""
tests/ — Request correlation, authentication and session lifecycle.
Run with: pytest tests/ -v
"""

import asyncio
import gc
import json
import string

import pytest

from conftest import MockOBSServer, StubTransport, settle

from obs_link.core import (
    AuthFailure,
    AuthInfo,
    CorrelationEngine,
    OBSClient,
    ProtocolError,
    RequestCancelled,
    RequestTimeout,
    SessionState,
    TransportError,
    auth_response,
    new_message_id,
)
from obs_link.core.auth import hash_encode
from obs_link.core.codec import decode_envelope, encode_request, reply_payload


def ok(body: dict, **fields) -> dict:
    return {"message-id": body["message-id"], "status": "ok", **fields}


# ─── Codec ────────────────────────────────────────────────────────────────────

def test_encode_request_reserved_keys_win():
    body = json.loads(encode_request("SetCurrentScene", "abc123", {"scene-name": "BRB", "message-id": "spoof"}))
    assert body == {"request-type": "SetCurrentScene", "message-id": "abc123", "scene-name": "BRB"}


def test_decode_envelope_rejects_garbage():
    assert decode_envelope("not json") is None
    assert decode_envelope("[1, 2]") is None
    assert decode_envelope('{"update-type": "Exiting"}') == {"update-type": "Exiting"}


def test_reply_payload_strips_envelope_keys():
    payload = reply_payload({"message-id": "x", "status": "ok", "name": "Live"})
    assert payload == {"name": "Live"}


# ─── Correlation Engine ───────────────────────────────────────────────────────

def test_new_message_id_shape():
    mid = new_message_id()
    assert len(mid) == 16
    assert set(mid) <= set(string.ascii_letters + string.digits)


@pytest.mark.asyncio
async def test_send_returns_reply_payload():
    engine = CorrelationEngine(timeout=1.0)
    stub = StubTransport()
    task = asyncio.create_task(engine.send(stub, "GetVersion", {"verbose": True}))
    await settle(lambda: stub.sent)

    body = stub.sent[0]
    assert body["request-type"] == "GetVersion"
    assert body["verbose"] is True
    assert await engine.complete(body["message-id"], ok(body, **{"obs-websocket-version": "4.9.1"}))
    assert await task == {"obs-websocket-version": "4.9.1"}
    assert engine.pending_count == 0


@pytest.mark.asyncio
async def test_send_error_reply_raises_protocol_error_with_server_text():
    engine = CorrelationEngine(timeout=1.0)
    stub = StubTransport()
    task = asyncio.create_task(engine.send(stub, "SetCurrentScene", {"scene-name": "Nope"}))
    await settle(lambda: stub.sent)

    mid = stub.sent[0]["message-id"]
    await engine.complete(mid, {"message-id": mid, "status": "error", "error": "requested scene does not exist"})
    with pytest.raises(ProtocolError) as excinfo:
        await task
    assert excinfo.value.message == "requested scene does not exist"
    assert excinfo.value.request_type == "SetCurrentScene"
    assert engine.pending_count == 0


@pytest.mark.asyncio
async def test_send_without_transport_raises():
    engine = CorrelationEngine()
    with pytest.raises(TransportError):
        await engine.send(None, "GetVersion")

    stub = StubTransport()
    await stub.close()
    with pytest.raises(TransportError):
        await engine.send(stub, "GetVersion")
    assert engine.pending_count == 0


@pytest.mark.asyncio
async def test_send_failure_does_not_leak_pending():
    class BrokenTransport(StubTransport):
        async def send(self, text):
            raise ConnectionResetError("socket gone")

    engine = CorrelationEngine()
    with pytest.raises(TransportError, match="socket gone"):
        await engine.send(BrokenTransport(), "GetVersion")
    assert engine.pending_count == 0


@pytest.mark.asyncio
async def test_cancel_during_failed_send_leaves_no_unretrieved_exception(caplog):
    release = asyncio.Event()

    class SlowBrokenTransport(StubTransport):
        async def send(self, text):
            await release.wait()
            raise ConnectionResetError("socket gone")

    engine = CorrelationEngine(timeout=None)
    task = asyncio.create_task(engine.send(SlowBrokenTransport(), "GetVersion"))
    await settle(lambda: engine.pending_count == 1)

    assert await engine.cancel_all() == 1
    release.set()
    with pytest.raises(TransportError):
        await task
    del task
    gc.collect()
    assert "exception was never retrieved" not in caplog.text


@pytest.mark.asyncio
async def test_unknown_message_id_is_dropped():
    engine = CorrelationEngine(timeout=1.0)
    stub = StubTransport()
    task = asyncio.create_task(engine.send(stub, "GetStats"))
    await settle(lambda: stub.sent)

    assert not await engine.complete("nobody-asked", {"message-id": "nobody-asked", "status": "ok"})
    assert engine.pending_count == 1
    assert not task.done()

    mid = stub.sent[0]["message-id"]
    await engine.complete(mid, ok(stub.sent[0], fps=60))
    assert await task == {"fps": 60}


@pytest.mark.asyncio
async def test_timeout_removes_pending_and_ignores_late_reply():
    engine = CorrelationEngine(timeout=0.05)
    stub = StubTransport()
    with pytest.raises(RequestTimeout) as excinfo:
        await engine.send(stub, "GetStats")
    assert excinfo.value.request_type == "GetStats"
    assert engine.pending_count == 0

    body = stub.sent[0]
    assert not await engine.complete(body["message-id"], ok(body))


@pytest.mark.asyncio
async def test_cancel_all_fails_every_pending_request():
    engine = CorrelationEngine(timeout=None)
    stub = StubTransport()
    tasks = [asyncio.create_task(engine.send(stub, "GetStats")) for _ in range(5)]
    await settle(lambda: engine.pending_count == 5)

    assert await engine.cancel_all() == 5
    results = await asyncio.gather(*tasks, return_exceptions=True)
    assert all(isinstance(r, RequestCancelled) for r in results)
    assert engine.pending_count == 0


@pytest.mark.asyncio
async def test_cancel_all_with_nothing_pending():
    engine = CorrelationEngine()
    assert await engine.cancel_all() == 0
    assert await engine.cancel_all() == 0


@pytest.mark.asyncio
async def test_message_ids_distinct_across_10000_concurrent_requests():
    engine = CorrelationEngine(timeout=None)
    stub = StubTransport()
    n = 10_000
    tasks = [asyncio.create_task(engine.send(stub, "GetStats")) for _ in range(n)]
    await settle(lambda: engine.pending_count == n, rounds=n * 5)

    assert len(set(engine.pending_ids())) == n
    assert len({b["message-id"] for b in stub.sent}) == n

    await engine.cancel_all()
    await asyncio.gather(*tasks, return_exceptions=True)


@pytest.mark.asyncio
async def test_message_id_collision_is_rerolled():
    ids = iter(["dup", "dup", "dup", "fresh"])
    engine = CorrelationEngine(timeout=None, id_factory=lambda: next(ids))
    stub = StubTransport()
    first = asyncio.create_task(engine.send(stub, "GetStats"))
    await settle(lambda: engine.pending_count == 1)
    second = asyncio.create_task(engine.send(stub, "GetVersion"))
    await settle(lambda: engine.pending_count == 2)

    assert [b["message-id"] for b in stub.sent] == ["dup", "fresh"]
    await engine.cancel_all()
    await asyncio.gather(first, second, return_exceptions=True)


# ─── Authentication ───────────────────────────────────────────────────────────

def test_hash_encode_reference_vector():
    assert hash_encode("ps") == "ZSfJNhovRpxSda/LXQblMBM2fNIxmV3hPcchhxE4g4I="


def test_auth_response_reference_vectors():
    assert auth_response("p", "s", "c") == "LEfh2WVBWpa8M06P7MehLXlToA1PtH2lNSNPjUZVYls="
    assert auth_response("hunter2", "xyz", "abc") == "gggALJMRreGHuwQkY8IYrkendMLe5rKQb5ojN1UKqKQ="
    assert auth_response("", "", "") == "XEB0z23rR/W2r5xf4+C70OQrlZb+iKxU1ca275h+DyA="


def test_auth_info_from_reply():
    info = AuthInfo.from_reply({"authRequired": True, "challenge": "abc", "salt": "xyz"})
    assert info == AuthInfo(True, "abc", "xyz")
    assert AuthInfo.from_reply({"authRequired": False}) == AuthInfo(False)


# ─── Session ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_connect_without_auth_skips_authenticate(server, client):
    connected = []
    client.on_connect(connected.append)

    await client.connect("ws://localhost:4444")

    assert server.request_types() == ["GetAuthRequired"]
    assert client.state is SessionState.READY
    assert client.is_connected()
    assert client.address == "ws://localhost:4444"
    assert len(connected) == 1
    await client.disconnect()


@pytest.mark.asyncio
async def test_connect_with_auth_sends_correct_response():
    server = MockOBSServer(password="hunter2", salt="xyz", challenge="abc")
    client = OBSClient(request_timeout=1.0, transport_factory=server.transport)

    await client.connect("ws://obs:4444", "hunter2")

    assert server.request_types() == ["GetAuthRequired", "Authenticate"]
    assert server.sent[1]["auth"] == "gggALJMRreGHuwQkY8IYrkendMLe5rKQb5ojN1UKqKQ="
    assert client.is_connected()
    await client.disconnect()


@pytest.mark.asyncio
async def test_connect_waits_for_authenticate_reply():
    server = MockOBSServer(password="hunter2", salt="xyz", challenge="abc")
    server.handlers["Authenticate"] = lambda body: None
    client = OBSClient(request_timeout=1.0, transport_factory=server.transport)

    task = asyncio.create_task(client.connect("ws://obs:4444", "hunter2"))
    await settle(lambda: len(server.sent) == 2)
    assert not task.done()
    assert client.state is SessionState.AUTHENTICATING

    server.current.push(ok(server.sent[1]))
    await task
    assert client.state is SessionState.READY
    await client.disconnect()


@pytest.mark.asyncio
async def test_wrong_password_raises_auth_failure_and_tears_down():
    server = MockOBSServer(password="hunter2")
    client = OBSClient(request_timeout=1.0, transport_factory=server.transport)

    with pytest.raises(AuthFailure, match="Authentication Failed"):
        await client.connect("ws://obs:4444", "letmein")

    assert client.state is SessionState.DISCONNECTED
    assert server.current.closed
    assert client.pending_requests == 0


@pytest.mark.asyncio
async def test_connect_refused_raises_transport_error(server, client):
    disconnected = []
    client.on_disconnect(disconnected.append)
    server.refuse_connections = True

    with pytest.raises(TransportError):
        await client.connect("ws://localhost:4444")
    assert client.state is SessionState.DISCONNECTED
    assert len(disconnected) == 1


@pytest.mark.asyncio
async def test_reconnect_disconnects_previous_session(server, client):
    events = []
    client.on_connect(lambda e: events.append(("connected", e.address)))
    client.on_disconnect(lambda e: events.append(("disconnected", e.address)))

    await client.connect("ws://first:4444")
    first = server.current
    await client.connect("ws://second:4444")

    assert first.closed
    assert client.address == "ws://second:4444"
    assert events == [
        ("connected", "ws://first:4444"),
        ("disconnected", "ws://first:4444"),
        ("connected", "ws://second:4444"),
    ]
    await client.disconnect()


@pytest.mark.asyncio
async def test_disconnect_cancels_outstanding_requests(server, client):
    disconnected = []
    client.on_disconnect(disconnected.append)
    server.handlers["GetStats"] = lambda body: None
    await client.connect("ws://localhost:4444")

    tasks = [asyncio.create_task(client.send_request("GetStats")) for _ in range(3)]
    await settle(lambda: client.pending_requests == 3)
    await client.disconnect()

    results = await asyncio.gather(*tasks, return_exceptions=True)
    assert all(isinstance(r, RequestCancelled) for r in results)
    assert client.pending_requests == 0
    assert client.state is SessionState.DISCONNECTED
    assert server.current.closed

    await client.disconnect()
    assert len(disconnected) == 1


@pytest.mark.asyncio
async def test_disconnect_when_never_connected(client):
    disconnected = []
    client.on_disconnect(disconnected.append)
    await client.disconnect()
    assert client.state is SessionState.DISCONNECTED
    assert disconnected == []


@pytest.mark.asyncio
async def test_unexpected_close_tears_down_once(server, client):
    disconnected = []
    client.on_disconnect(disconnected.append)
    server.handlers["GetStats"] = lambda body: None
    await client.connect("ws://localhost:4444")
    task = asyncio.create_task(client.send_request("GetStats"))
    await settle(lambda: client.pending_requests == 1)

    server.current.drop()
    await settle(lambda: client.state is SessionState.DISCONNECTED)

    with pytest.raises(RequestCancelled):
        await task
    assert len(disconnected) == 1
    with pytest.raises(TransportError):
        await client.send_request("GetVersion")


@pytest.mark.asyncio
async def test_request_timeout_leaves_session_ready(server, client):
    server.handlers["GetStats"] = lambda body: None
    server.handlers["GetVersion"] = lambda body: {"obs-websocket-version": "4.9.1"}
    await client.connect("ws://localhost:4444")
    client.request_timeout = 0.05

    with pytest.raises(RequestTimeout):
        await client.send_request("GetStats")
    assert client.is_connected()
    assert await client.send_request("GetVersion") == {"obs-websocket-version": "4.9.1"}

    # The late reply for the timed-out request is ignored.
    server.current.push(ok(server.sent[1]))
    await asyncio.sleep(0)
    assert client.is_connected()
    await client.disconnect()


@pytest.mark.asyncio
async def test_send_request_when_disconnected(client):
    with pytest.raises(TransportError, match="Not connected"):
        await client.send_request("GetVersion")


def test_connection_manager_singleton():
    from obs_link.core import get_obs_client, init_obs_client

    client = init_obs_client(request_timeout=3.0)
    assert get_obs_client() is client
    assert client.request_timeout == 3.0
    assert client.state is SessionState.DISCONNECTED
