"""
Integration tests for the broker's HTTP and WebSocket endpoints.
"""

import pytest
from starlette.testclient import TestClient

from relaybroker.config import BrokerConfig
from relaybroker.routes.broker_routes import render_session_table
from relaybroker.server import create_app


def _session(client, target, key):
    return {"type": "SESSION", "client": client, "target": target, "key": key}


@pytest.fixture
def client():
    """Test client with the broker running (lifespan entered)."""
    app = create_app(BrokerConfig(ws_path="/"))
    with TestClient(app) as c:
        yield c


class TestWebSocketProtocol:
    def test_end_to_end_pairing_relay_disconnect(self, client):
        with client.websocket_connect("/") as a:
            a.send_json(_session("a", "b", "k"))
            assert a.receive_text() == "SESSION_NOT_UP: -1"

            with client.websocket_connect("/") as b:
                b.send_json(_session("b", "a", "k"))
                assert b.receive_text() == "SESSION_UP"
                assert a.receive_text() == "SESSION_UP"

                a.send_json({"type": "COMMAND", "command": "ping"})
                assert b.receive_text() == "ping"

                b.send_json({"type": "COMMAND", "command": {"op": "pong"}})
                assert a.receive_text() == '{"op":"pong"}'

            assert a.receive_text() == "SESSION_NOT_UP: -1"

    def test_key_mismatch_reported_to_both(self, client):
        with client.websocket_connect("/") as a:
            a.send_json(_session("a", "b", "k1"))
            assert a.receive_text() == "SESSION_NOT_UP: -1"

            with client.websocket_connect("/") as b:
                b.send_json(_session("b", "a", "k2"))
                assert b.receive_text() == "SESSION_NOT_UP: -2"
                assert a.receive_text() == "SESSION_NOT_UP: -2"

    def test_invalid_declaration(self, client):
        with client.websocket_connect("/") as a:
            a.send_json({"type": "SESSION", "client": "a", "target": "b"})
            assert a.receive_text() == "SESSION_NOT_UP: -100"

    def test_malformed_frames_are_ignored(self, client):
        with client.websocket_connect("/") as a:
            a.send_text("this is not json")
            a.send_text("[1, 2, 3]")
            a.send_json({"type": "UNKNOWN"})
            a.send_bytes(b'{"type": "SESSION", "client": "a", "target": "b", "key": "k"}')
            assert a.receive_text() == "SESSION_NOT_UP: -1"

    def test_deeply_nested_frame_keeps_link_up(self, client):
        with client.websocket_connect("/") as a, client.websocket_connect("/") as b:
            a.send_json(_session("a", "b", "k"))
            assert a.receive_text() == "SESSION_NOT_UP: -1"
            b.send_json(_session("b", "a", "k"))
            assert b.receive_text() == "SESSION_UP"
            assert a.receive_text() == "SESSION_UP"

            a.send_text("[" * 200000)
            a.send_json({"type": "COMMAND", "command": "ping"})
            assert b.receive_text() == "ping"

            states = {
                s["client_id"]: s["state"]
                for s in client.get("/api/sessions").json()["sessions"]
            }
            assert states == {"a": "confirmed", "b": "confirmed"}

    def test_identity_change_over_the_wire(self, client):
        with client.websocket_connect("/") as a, client.websocket_connect("/") as b:
            a.send_json(_session("a", "b", "k"))
            assert a.receive_text() == "SESSION_NOT_UP: -1"
            b.send_json(_session("b", "a", "k"))
            assert b.receive_text() == "SESSION_UP"
            assert a.receive_text() == "SESSION_UP"

            a.send_json(_session("a", "c", "k"))
            assert b.receive_text() == "SESSION_NOT_UP: -1"
            assert a.receive_text() == "SESSION_NOT_UP: -1"


class TestInspectionEndpoints:
    def test_sessions_html(self, client):
        with client.websocket_connect("/") as a:
            a.send_json(_session("alpha", "beta", "<secret>"))
            assert a.receive_text() == "SESSION_NOT_UP: -1"

            response = client.get("/sessions")
            assert response.status_code == 200
            assert response.headers["content-type"].startswith("text/html")
            body = response.text
            assert "<td>clientID</td>" in body
            assert "<td>alpha</td>" in body
            assert "&lt;secret&gt;" in body

    def test_sessions_json(self, client):
        with client.websocket_connect("/") as a, client.websocket_connect("/") as b:
            a.send_json(_session("a", "b", "k"))
            assert a.receive_text() == "SESSION_NOT_UP: -1"
            b.send_json(_session("b", "a", "k"))
            assert b.receive_text() == "SESSION_UP"

            data = client.get("/api/sessions").json()
            assert data["count"] == 2
            assert data["connections"] == 2
            assert len(data["peers"]) == 2
            assert all(p["status"] == "connected" for p in data["peers"])
            assert all(p["peer"].startswith("testclient") for p in data["peers"])
            states = {s["client_id"]: s["state"] for s in data["sessions"]}
            assert states == {"a": "confirmed", "b": "confirmed"}

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "uptime_seconds" in data
        assert data["sessions"]["total"] == 0

    def test_index_banner(self, client):
        data = client.get("/").json()
        assert data["service"] == "relaybroker"
        assert data["websocket"] == "/"

    def test_index_file(self, tmp_path):
        page = tmp_path / "index.html"
        page.write_text("<h1>broker</h1>", encoding="utf-8")
        app = create_app(BrokerConfig(index_file=str(page)))
        with TestClient(app) as c:
            response = c.get("/")
            assert response.status_code == 200
            assert "<h1>broker</h1>" in response.text

    def test_debug_endpoints_can_be_disabled(self):
        app = create_app(BrokerConfig(debug_endpoints=False))
        with TestClient(app) as c:
            assert c.get("/sessions").status_code == 404
            assert c.get("/api/sessions").status_code == 404
            assert c.get("/health").status_code == 200


class TestRenderSessionTable:
    def test_empty_table_has_header(self):
        html = render_session_table([])
        assert html.startswith("<table border=1><tr><td>ID</td>")
        assert html.endswith("</table>")

    def test_null_partner(self):
        html = render_session_table(
            [
                {
                    "id": 3,
                    "client_id": "a",
                    "target_id": "b",
                    "client_key": "k",
                    "target_key": None,
                    "client_connection": 3,
                    "target_connection": None,
                }
            ]
        )
        assert "<tr><td>3</td><td>a</td><td>b</td><td>k</td><td>null</td><td>3</td><td>null</td></tr>" in html
