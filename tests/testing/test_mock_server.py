"""Tests for the route-based mock server."""

import httpx

from connector_sdk.clients.models.errors import ApiRequestError
from connector_sdk.clients.rest import APIClient
from connector_sdk.testing.mock_server import MockServer


class TestHandleRequest:
    def setup_method(self):
        self.server = MockServer()

    async def test_sync_handler(self):
        self.server.mock("GET", "/contacts", lambda req: [{"id": 1}])

        response = await self.server.handle_request("GET", "/contacts")

        assert response.status == 200
        assert response.body == [{"id": 1}]

    async def test_async_handler_receives_request(self):
        # Arrange
        async def create(req):
            return {"created": req.body["name"], "via": req.headers.get("X-Source")}

        self.server.mock("post", "/contacts", create)

        # Act
        response = await self.server.handle_request(
            "POST", "/contacts", {"name": "Ada"}, {"X-Source": "test"}
        )

        # Assert
        assert response.status == 200
        assert response.body == {"created": "Ada", "via": "test"}

    async def test_unmatched_route_is_404_and_still_logged(self):
        response = await self.server.handle_request("DELETE", "/nothing")

        assert response.status == 404
        assert response.body == {"error": "Route not found"}
        assert [(r.method, r.path) for r in self.server.get_request_log()] == [
            ("DELETE", "/nothing")
        ]

    async def test_method_is_part_of_route_key(self):
        self.server.mock("GET", "/contacts", lambda req: [])

        response = await self.server.handle_request("POST", "/contacts")

        assert response.status == 404

    async def test_handler_exception_becomes_500(self):
        def broken(req):
            raise KeyError("missing field")

        self.server.mock("GET", "/broken", broken)

        response = await self.server.handle_request("GET", "/broken")

        assert response.status == 500
        assert response.body == {"error": "'missing field'"}

    async def test_later_registration_replaces_handler(self):
        self.server.mock("GET", "/v", lambda req: 1)
        self.server.mock("GET", "/v", lambda req: 2)

        assert (await self.server.handle_request("GET", "/v")).body == 2

    async def test_clear_log(self):
        await self.server.handle_request("GET", "/a")

        self.server.clear_log()

        assert self.server.get_request_log() == []


class TestAsgiApp:
    async def test_api_client_against_mock_server(self):
        # Arrange
        server = MockServer()
        server.mock("GET", "/v1/contacts", lambda req: {"results": [{"id": 1}]})
        server.mock("POST", "/v1/contacts", lambda req: {"id": 2, **req.body})
        client = APIClient(
            "http://mock/v1", transport=httpx.ASGITransport(app=server.asgi_app())
        )

        # Act
        listed = await client.get("/contacts")
        created = await client.post("/contacts", {"name": "Bob"})
        await client.close()

        # Assert
        assert listed == {"results": [{"id": 1}]}
        assert created == {"id": 2, "name": "Bob"}
        log = server.get_request_log()
        assert [(r.method, r.path) for r in log] == [
            ("GET", "/v1/contacts"),
            ("POST", "/v1/contacts"),
        ]

    async def test_unmatched_route_over_http(self):
        server = MockServer()
        client = APIClient("http://mock", transport=httpx.ASGITransport(app=server.asgi_app()))

        try:
            await client.get("/missing")
        except ApiRequestError as e:
            assert e.status == 404
            assert "Route not found" in e.body
        else:
            raise AssertionError("expected ApiRequestError")
        finally:
            await client.close()
