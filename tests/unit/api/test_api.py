"""Unit tests for the HTTP transport.

Covers:
- health and status routes
- req_check over the request route (bound and unbound)
- inbound signals and payload validation
- the outbound signal WebSocket
- APIServer binding the monitor on start and unbinding on stop
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

from aiohttp import WSMsgType, web

from diskmon.core.api.controller import APIController
from diskmon.core.api.server import APIServer
from diskmon.core.bus import (
    BASE_BOOT_DONE,
    DISK_SPACE_CHANGE_IND,
    DISKMONITOR_SIG_INTERFACE,
    MCE_SIG_INTERFACE,
    STARTUP_SIG_INTERFACE,
    SYSTEM_INACTIVITY_IND,
)
from diskmon.core.events import TransportDisconnected

from tests.unit.api.conftest import monitor_client, run_async, wait_for_subscribers

REQ_CHECK_URL = "/api/v1/request/req_check"
BOOT_DONE_URL = f"/api/v1/signal/{STARTUP_SIG_INTERFACE}/{BASE_BOOT_DONE}"
INACTIVITY_URL = f"/api/v1/signal/{MCE_SIG_INTERFACE}/{SYSTEM_INACTIVITY_IND}"


# =============================================================================
# System Routes Tests
# =============================================================================


class TestSystemRoutes:

    def test_health_check(self, monitor):
        """GET /api/v1/health returns ok."""

        async def do_test():
            async with monitor_client(monitor, localhost_only=True) as client:
                resp = await client.get("/api/v1/health")
                assert resp.status == 200
                data = await resp.json()
                assert data["status"] == "ok"
                assert data["api_version"] == "v1"

        run_async(do_test())

    def test_status_before_any_check(self, monitor):
        """GET /api/v1/status reports mode, readiness and watched mounts."""

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.get("/api/v1/status")
                assert resp.status == 200
                data = await resp.json()
                assert data["mode"] == "idle"
                assert data["ready_to_check"] is False
                assert data["last_check_iso"] is None
                assert data["next_interval"] == 1800
                assert data["methods_bound"] is True
                assert data["running"] is True
                assert data["mounts"] == [{"path": "/", "max_usage_percent": 90}]

        run_async(do_test())


# =============================================================================
# Request Route Tests
# =============================================================================


class TestRequestRoute:

    def test_req_check_unbound_is_503(self, monitor, backend):
        """Without a connected transport the method table is not bound."""

        async def do_test():
            async with monitor_client(monitor, connected=False) as client:
                resp = await client.post(REQ_CHECK_URL)
                assert resp.status == 503
                data = await resp.json()
                assert data["error"]["code"] == "NOT_BOUND"

        run_async(do_test())
        assert backend.calls == 0

    def test_req_check_before_startup_acknowledges_without_checking(self, monitor, backend):

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.post(REQ_CHECK_URL, headers={"X-Sender": ":1.42"})
                assert resp.status == 200
                assert await resp.json() == {}

        run_async(do_test())
        assert backend.calls == 0
        assert monitor.state.last_check_time == 0.0

    def test_req_check_after_startup_runs_check(self, monitor, backend, clock):

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.post(BOOT_DONE_URL)
                assert await resp.json() == {"accepted": True, "handlers": 1}
                await monitor.drain()

                resp = await client.post(REQ_CHECK_URL)
                assert resp.status == 200
                assert await resp.json() == {}

        run_async(do_test())
        assert monitor.state.ready_to_check is True
        assert backend.calls == 1
        assert monitor.state.last_check_time == clock.now

    def test_unknown_method_is_503(self, monitor):

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.post("/api/v1/request/req_format")
                assert resp.status == 503

        run_async(do_test())

    def test_transport_disconnect_unbinds(self, monitor):

        async def do_test():
            async with monitor_client(monitor) as client:
                monitor.post(TransportDisconnected())
                await monitor.drain()
                resp = await client.post(REQ_CHECK_URL)
                assert resp.status == 503

        run_async(do_test())
        assert monitor.methods_bound is False
        assert monitor.signals_bound is False


# =============================================================================
# Signal Route Tests
# =============================================================================


class TestSignalRoute:

    def test_inactivity_transition_reschedules(self, monitor, provider):
        """system_inactivity_ind {inactive: 0} switches to active mode."""

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.post(INACTIVITY_URL, json={"inactive": 0})
                assert resp.status == 200
                assert (await resp.json())["accepted"] is True
                await monitor.drain()

        run_async(do_test())
        assert monitor.state.device_active is True
        assert provider.last.min_delay == 300
        assert provider.last.max_delay == 420

    def test_missing_inactive_field_is_400(self, monitor):

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.post(INACTIVITY_URL, json={})
                assert resp.status == 400
                data = await resp.json()
                assert data["error"]["code"] == "MISSING_FIELD"

        run_async(do_test())
        assert monitor.state.device_active is False

    def test_invalid_inactive_value_is_400(self, monitor):

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.post(INACTIVITY_URL, json={"inactive": "sometimes"})
                assert resp.status == 400
                data = await resp.json()
                assert data["error"]["code"] == "VALIDATION_ERROR"

        run_async(do_test())

    def test_non_json_body_is_400(self, monitor):

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.post(INACTIVITY_URL, data="inactive=1")
                assert resp.status == 400
                resp = await client.post(INACTIVITY_URL, json=[1])
                assert resp.status == 400

        run_async(do_test())

    def test_unsubscribed_signal_is_not_accepted(self, monitor):

        async def do_test():
            async with monitor_client(monitor) as client:
                resp = await client.post("/api/v1/signal/com.example.signal/unrelated")
                assert resp.status == 200
                assert await resp.json() == {"accepted": False, "handlers": 0}

        run_async(do_test())


# =============================================================================
# Signal WebSocket Tests
# =============================================================================


class TestSignalStream:

    def test_over_limit_result_is_streamed(self, monitor, backend):

        backend.results = [("/", 95)]

        async def do_test():
            async with monitor_client(monitor) as client:
                ws = await client.ws_connect("/api/v1/signals")
                await wait_for_subscribers(monitor)

                await client.post(BOOT_DONE_URL)
                await monitor.drain()
                resp = await client.post(REQ_CHECK_URL)
                assert resp.status == 200

                message = await asyncio.wait_for(ws.receive_json(), timeout=2.0)
                await ws.close()
                return message

        message = run_async(do_test())
        assert message == {
            "interface": DISKMONITOR_SIG_INTERFACE,
            "member": DISK_SPACE_CHANGE_IND,
            "path": "/",
            "percent_used": 95,
        }

    def test_disconnect_unsubscribes(self, monitor):

        async def do_test():
            async with monitor_client(monitor) as client:
                ws = await client.ws_connect("/api/v1/signals")
                await wait_for_subscribers(monitor)
                await ws.close()
                for _ in range(100):
                    if monitor.bus.subscriber_count == 0:
                        break
                    await asyncio.sleep(0.01)
                return monitor.bus.subscriber_count

        assert run_async(do_test()) == 0

    def test_failed_send_closes_and_unsubscribes(self, monitor):
        """A forwarder that cannot send closes the socket instead of lingering."""

        async def do_test():
            async with monitor_client(monitor) as client:
                ws = await client.ws_connect("/api/v1/signals")
                await wait_for_subscribers(monitor)

                with patch.object(web.WebSocketResponse, "send_json", side_effect=RuntimeError("encode failed")):
                    monitor.bus.emit_signal(DISKMONITOR_SIG_INTERFACE, DISK_SPACE_CHANGE_IND, {"path": "/", "percent_used": 99})
                    message = await asyncio.wait_for(ws.receive(), timeout=2.0)

                for _ in range(100):
                    if monitor.bus.subscriber_count == 0:
                        break
                    await asyncio.sleep(0.01)
                return message.type, monitor.bus.subscriber_count

        message_type, subscribers = run_async(do_test())
        assert message_type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED)
        assert subscribers == 0


# =============================================================================
# APIServer Tests
# =============================================================================


class TestAPIServer:

    def test_start_binds_and_stop_unbinds(self, monitor):

        async def do_test():
            await monitor.start()
            server = APIServer(APIController(monitor), host="127.0.0.1", port=0)
            try:
                await server.start()
                await monitor.drain()
                bound_after_start = (monitor.methods_bound, monitor.signals_bound)

                await server.stop()
                await monitor.drain()
                bound_after_stop = (monitor.methods_bound, monitor.signals_bound)
            finally:
                await server.stop()
                await monitor.stop()
            return bound_after_start, bound_after_stop, server.is_running

        after_start, after_stop, running = run_async(do_test())
        assert after_start == (True, True)
        assert after_stop == (False, False)
        assert running is False
