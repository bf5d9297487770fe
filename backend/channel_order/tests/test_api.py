"""Tests for the /api/servers/{id}/channels and /categories endpoints."""

import pytest
from fastapi.testclient import TestClient

from channel_order.core import events
from channel_order.engine.push import handle_server_event
from channel_order.engine.store import ChannelStore
from channel_order.schemas.category import CategoryResponse
from channel_order.schemas.channel import ChannelResponse
from channel_order.tests.conftest import create_category, create_channel, create_server


@pytest.fixture()
def server_id(client):
    return create_server(client)


class TestHealth:
    def test_health(self, client: TestClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


class TestCreate:
    def test_channels_append_to_their_container(self, client: TestClient, server_id):
        cat = create_category(client, server_id, "text")
        a = create_channel(client, server_id, "general")
        b = create_channel(client, server_id, "random")
        c = create_channel(client, server_id, "news", category_id=cat["id"])
        assert (a["position"], b["position"], c["position"]) == (0, 1, 0)
        assert c["category_id"] == cat["id"]

    def test_categories_append(self, client: TestClient, server_id):
        first = create_category(client, server_id, "text")
        second = create_category(client, server_id, "voice")
        assert (first["position"], second["position"]) == (0, 1)

    def test_duplicate_channel_name(self, client: TestClient, server_id):
        create_channel(client, server_id, "general")
        resp = client.post(f"/api/servers/{server_id}/channels", json={"name": "general"})
        assert resp.status_code == 409

    def test_invalid_channel_name(self, client: TestClient, server_id):
        resp = client.post(f"/api/servers/{server_id}/channels", json={"name": "bad name"})
        assert resp.status_code == 422

    def test_channel_in_unknown_category(self, client: TestClient, server_id):
        resp = client.post(f"/api/servers/{server_id}/channels", json={"name": "x", "category_id": 999})
        assert resp.status_code == 404

    def test_unknown_server(self, client: TestClient):
        resp = client.get("/api/servers/999/channels")
        assert resp.status_code == 404


class TestDelete:
    def test_delete_channel_closes_gap(self, client: TestClient, server_id):
        ids = [create_channel(client, server_id, name)["id"] for name in ("a-1", "b-2", "c-3")]
        resp = client.delete(f"/api/servers/{server_id}/channels/{ids[0]}")
        assert resp.status_code == 204
        listed = client.get(f"/api/servers/{server_id}/channels").json()
        assert [(c["id"], c["position"]) for c in listed] == [(ids[1], 0), (ids[2], 1)]

    def test_delete_category_moves_channels_to_uncategorized(self, client: TestClient, server_id):
        first = create_category(client, server_id, "text")
        second = create_category(client, server_id, "voice")
        loose = create_channel(client, server_id, "general")
        inner = create_channel(client, server_id, "news", category_id=first["id"])

        resp = client.delete(f"/api/servers/{server_id}/categories/{first['id']}")
        assert resp.status_code == 204

        channels = {c["id"]: c for c in client.get(f"/api/servers/{server_id}/channels").json()}
        assert channels[inner["id"]]["category_id"] is None
        assert channels[inner["id"]]["position"] == 1
        assert channels[loose["id"]]["position"] == 0

        categories = client.get(f"/api/servers/{server_id}/categories").json()
        assert [(c["id"], c["position"]) for c in categories] == [(second["id"], 0)]

    def test_delete_missing_category(self, client: TestClient, server_id):
        assert client.delete(f"/api/servers/{server_id}/categories/999").status_code == 404


class TestDeleteKeepsClientInStep:
    """A client applying the delete event must end up with the order the authority stores."""

    @staticmethod
    def _mirror(client: TestClient, server_id: int) -> ChannelStore:
        store = ChannelStore()
        categories = client.get(f"/api/servers/{server_id}/categories").json()
        channels = client.get(f"/api/servers/{server_id}/channels").json()
        store.set_categories(server_id, [CategoryResponse.model_validate(c) for c in categories])
        store.set_channels(server_id, [ChannelResponse.model_validate(c) for c in channels])
        return store

    @staticmethod
    def _layout(channels) -> dict:
        return {c["id"]: (c["position"], c["category_id"]) for c in channels}

    def test_category_delete(self, client: TestClient, server_id):
        first = create_category(client, server_id, "text")
        second = create_category(client, server_id, "voice")
        create_channel(client, server_id, "a-1")
        create_channel(client, server_id, "b-2")
        create_channel(client, server_id, "c-3", category_id=first["id"])
        create_channel(client, server_id, "d-4", category_id=first["id"])
        store = self._mirror(client, server_id)

        client.delete(f"/api/servers/{server_id}/categories/{first['id']}")
        handle_server_event(store, server_id, {"type": events.CATEGORY_DELETE, "data": {"id": first["id"]}})

        server_side = client.get(f"/api/servers/{server_id}/channels").json()
        client_side = [c.model_dump(mode="json") for c in store.get_channels(server_id)]
        assert self._layout(client_side) == self._layout(server_side)
        assert store.get_category(server_id, second["id"]).position == 0

    def test_channel_delete(self, client: TestClient, server_id):
        ids = [create_channel(client, server_id, name)["id"] for name in ("a-1", "b-2", "c-3")]
        store = self._mirror(client, server_id)

        client.delete(f"/api/servers/{server_id}/channels/{ids[0]}")
        handle_server_event(store, server_id, {"type": events.CHANNEL_DELETE, "data": {"id": ids[0]}})

        server_side = client.get(f"/api/servers/{server_id}/channels").json()
        client_side = [c.model_dump(mode="json") for c in store.get_channels(server_id)]
        assert self._layout(client_side) == self._layout(server_side)


class TestReorderChannels:
    def test_full_batch_is_applied(self, client: TestClient, server_id):
        cat = create_category(client, server_id, "text")
        a = create_channel(client, server_id, "general")
        b = create_channel(client, server_id, "random")
        payload = {
            "channels": [
                {"channel_id": b["id"], "position": 0, "category_id": None},
                {"channel_id": a["id"], "position": 0, "category_id": cat["id"]},
            ]
        }
        resp = client.put(f"/api/servers/{server_id}/channels/reorder", json=payload)
        assert resp.status_code == 200
        result = {c["id"]: (c["position"], c["category_id"]) for c in resp.json()}
        assert result == {b["id"]: (0, None), a["id"]: (0, cat["id"])}

    def test_duplicate_ids_rejected(self, client: TestClient, server_id):
        a = create_channel(client, server_id, "general")
        payload = {"channels": [{"channel_id": a["id"], "position": 0}, {"channel_id": a["id"], "position": 1}]}
        assert client.put(f"/api/servers/{server_id}/channels/reorder", json=payload).status_code == 422

    def test_foreign_channel_rejected(self, client: TestClient, server_id):
        other = create_server(client, "other")
        foreign = create_channel(client, other, "elsewhere")
        payload = {"channels": [{"channel_id": foreign["id"], "position": 0}]}
        assert client.put(f"/api/servers/{server_id}/channels/reorder", json=payload).status_code == 404

    def test_unknown_category_rejected(self, client: TestClient, server_id):
        a = create_channel(client, server_id, "general")
        payload = {"channels": [{"channel_id": a["id"], "position": 0, "category_id": 999}]}
        assert client.put(f"/api/servers/{server_id}/channels/reorder", json=payload).status_code == 422

    def test_negative_position_rejected(self, client: TestClient, server_id):
        a = create_channel(client, server_id, "general")
        payload = {"channels": [{"channel_id": a["id"], "position": -1}]}
        assert client.put(f"/api/servers/{server_id}/channels/reorder", json=payload).status_code == 422


class TestReorderCategories:
    def test_full_order_is_applied(self, client: TestClient, server_id):
        ids = [create_category(client, server_id, name)["id"] for name in ("g0", "g1", "g2")]
        payload = {"categories": [{"category_id": cid, "position": pos} for pos, cid in enumerate([ids[2], ids[0], ids[1]])]}
        resp = client.put(f"/api/servers/{server_id}/categories/reorder", json=payload)
        assert resp.status_code == 200
        assert [c["id"] for c in resp.json()] == [ids[2], ids[0], ids[1]]
        assert [c["position"] for c in resp.json()] == [0, 1, 2]

    def test_foreign_category_rejected(self, client: TestClient, server_id):
        other = create_server(client, "other")
        foreign = create_category(client, other, "elsewhere")
        payload = {"categories": [{"category_id": foreign["id"], "position": 0}]}
        assert client.put(f"/api/servers/{server_id}/categories/reorder", json=payload).status_code == 404


class TestServerSocket:
    def test_reorder_is_broadcast(self, client: TestClient, server_id):
        ids = [create_category(client, server_id, name)["id"] for name in ("g0", "g1")]
        with client.websocket_connect(f"/ws/servers/{server_id}") as ws:
            payload = {"categories": [{"category_id": ids[1], "position": 0}, {"category_id": ids[0], "position": 1}]}
            resp = client.put(f"/api/servers/{server_id}/categories/reorder", json=payload)
            assert resp.status_code == 200
            event = ws.receive_json()
            assert event["type"] == "category.reorder"
            assert [c["id"] for c in event["data"]] == [ids[1], ids[0]]

    def test_unknown_server_socket_is_closed(self, client: TestClient):
        with pytest.raises(Exception):
            with client.websocket_connect("/ws/servers/999") as ws:
                ws.receive_json()
