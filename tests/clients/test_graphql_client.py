"""Tests for the GraphQL client."""

import asyncio
import json

import httpx
import pytest

from connector_sdk.clients.graphql import GraphQLClient
from connector_sdk.clients.models.credentials import Credentials
from connector_sdk.clients.models.errors import GraphQLError, GraphQLHttpError
from connector_sdk.resilience.errors import OperationCancelledError
from connector_sdk.resilience.rate_limiter import RateLimiter

ENDPOINT = "https://api.example.com/graphql"


class TestGraphQLRequest:
    def setup_method(self):
        self.requests = []

    def _client(self, handler, credentials=None, **kwargs):
        def recording(request):
            self.requests.append(request)
            return handler(request)

        return GraphQLClient(
            ENDPOINT,
            credentials=credentials,
            transport=httpx.MockTransport(recording),
            **kwargs,
        )

    async def test_query_posts_standard_payload(self):
        # Arrange
        client = self._client(
            lambda r: httpx.Response(200, json={"data": {"viewer": {"login": "ada"}}}),
            credentials=Credentials(bearer="tok"),
        )

        # Act
        data = await client.query(
            "query Viewer($id: ID) { viewer { login } }",
            {"id": "1"},
            operation_name="Viewer",
        )
        await client.close()

        # Assert
        assert data == {"viewer": {"login": "ada"}}
        request = self.requests[0]
        assert request.method == "POST"
        assert str(request.url) == ENDPOINT
        assert request.headers["content-type"] == "application/json"
        assert request.headers["authorization"] == "Bearer tok"
        assert json.loads(request.content) == {
            "query": "query Viewer($id: ID) { viewer { login } }",
            "variables": {"id": "1"},
            "operationName": "Viewer",
        }

    async def test_missing_variables_sent_as_empty_object(self):
        client = self._client(lambda r: httpx.Response(200, json={"data": {}}))

        await client.mutation("mutation { ping }")

        payload = json.loads(self.requests[0].content)
        assert payload["variables"] == {}
        assert payload["operationName"] is None

    async def test_basic_credentials_are_not_sent(self):
        client = self._client(
            lambda r: httpx.Response(200, json={"data": {}}),
            credentials=Credentials.from_basic("user", "pw"),
        )

        await client.query("{ ping }")

        assert "authorization" not in self.requests[0].headers

    async def test_api_key_header(self):
        client = self._client(
            lambda r: httpx.Response(200, json={"data": {}}),
            credentials=Credentials(api_key="key-1"),
        )

        await client.query("{ ping }")

        assert self.requests[0].headers["x-api-key"] == "key-1"

    async def test_errors_on_200_raise_graphql_error(self):
        # Arrange
        errors = [{"message": "Field 'foo' doesn't exist", "path": ["foo"]}]
        client = self._client(
            lambda r: httpx.Response(200, json={"data": {"bar": 1}, "errors": errors})
        )

        # Act & Assert
        with pytest.raises(GraphQLError) as exc_info:
            await client.query("{ foo bar }")

        assert exc_info.value.errors == errors
        assert exc_info.value.data == {"bar": 1}
        assert "doesn't exist" in str(exc_info.value)

    async def test_non_2xx_raises_http_error(self):
        client = self._client(lambda r: httpx.Response(502, text="bad gateway"))

        with pytest.raises(GraphQLHttpError) as exc_info:
            await client.query("{ ping }")

        assert exc_info.value.status == 502
        assert exc_info.value.body == "bad gateway"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, json=[{"data": {}}]),
            httpx.Response(200, json="ok"),
            httpx.Response(200, text="<html>maintenance</html>"),
        ],
    )
    async def test_body_that_is_not_an_object_raises_graphql_error(self, response):
        client = self._client(lambda r: response)

        with pytest.raises(GraphQLError, match="not a JSON object"):
            await client.query("{ ping }")

    async def test_cancel_event_aborts_rate_limit_wait(self):
        # Arrange
        limiter = RateLimiter(1, 60.0)
        client = self._client(
            lambda r: httpx.Response(200, json={"data": {}}), rate_limiter=limiter
        )
        await client.query("{ first }")
        event = asyncio.Event()
        event.set()

        # Act & Assert
        with pytest.raises(OperationCancelledError):
            await client.query("{ second }", cancel_event=event)

        assert len(self.requests) == 1


class TestBatchQuery:
    async def test_results_keep_input_order(self):
        # Arrange
        delays = {"first": 0.03, "second": 0.0, "third": 0.01}

        async def handler(request):
            name = json.loads(request.content)["variables"]["name"]
            await asyncio.sleep(delays[name])
            return httpx.Response(200, json={"data": {"name": name}})

        client = GraphQLClient(ENDPOINT, transport=httpx.MockTransport(handler))

        # Act
        results = await client.batch_query(
            [{"query": "query($name: String) { echo }", "variables": {"name": n}} for n in delays]
        )
        await client.close()

        # Assert
        assert results == [{"name": "first"}, {"name": "second"}, {"name": "third"}]

    async def test_one_failure_fails_the_batch(self):
        def handler(request):
            if "broken" in json.loads(request.content)["query"]:
                return httpx.Response(200, json={"errors": [{"message": "boom"}]})
            return httpx.Response(200, json={"data": {}})

        client = GraphQLClient(ENDPOINT, transport=httpx.MockTransport(handler))

        with pytest.raises(GraphQLError):
            await client.batch_query([{"query": "{ ok }"}, {"query": "{ broken }"}])
