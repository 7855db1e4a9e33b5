"""Tests for the POS customer API client."""

import json
import threading
from collections.abc import Callable

import httpx
import pytest

from src.exceptions import ConfigurationError, RemoteApiError, TransportError
from src.schemas.pos import PosCustomer
from src.services.pos_service import PosService
from src.settings import settings

Handler = Callable[[httpx.Request], httpx.Response]


def make_service(handler: Handler, token: str | None = "secret-token") -> PosService:
    return PosService(
        base_url="https://pos.test/v1.0",
        token=token,
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    """Tests for authentication and error mapping."""

    @pytest.mark.anyio
    async def test_sends_bearer_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "cust-1", "name": "Maria"})

        service = make_service(handler)
        await service.get_customer("cust-1")

        assert seen[0].headers["Authorization"] == "Bearer secret-token"
        assert seen[0].url.path == "/v1.0/customers/cust-1"
        await service.close()

    @pytest.mark.anyio
    async def test_error_status_raises_remote_api_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, text='{"errors":[{"code":"INVALID_PHONE"}]}')

        service = make_service(handler)

        with pytest.raises(RemoteApiError) as exc_info:
            await service.get_customer("cust-1")

        assert exc_info.value.status_code == 422
        assert "INVALID_PHONE" in exc_info.value.body
        assert exc_info.value.retryable is False

    @pytest.mark.anyio
    @pytest.mark.parametrize("status_code", [408, 429, 500, 501, 503, 507, 511])
    async def test_server_errors_are_retryable(self, status_code: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, text="try later")

        service = make_service(handler)

        with pytest.raises(RemoteApiError) as exc_info:
            await service.get_customer("cust-1")

        assert exc_info.value.retryable is True

    @pytest.mark.anyio
    @pytest.mark.parametrize("status_code", [400, 401, 404, 409, 422, 425])
    async def test_client_errors_are_not_retryable(self, status_code: int) -> None:
        service = make_service(lambda request: httpx.Response(status_code, text="no"))

        with pytest.raises(RemoteApiError) as exc_info:
            await service.get_customer("cust-1")

        assert exc_info.value.retryable is False

    @pytest.mark.anyio
    async def test_non_json_success_body_raises_remote_api_error(self) -> None:
        service = make_service(
            lambda request: httpx.Response(200, text="<html>maintenance</html>")
        )

        with pytest.raises(RemoteApiError) as exc_info:
            await service.list_customers()

        assert exc_info.value.status_code == 200
        assert "maintenance" in exc_info.value.body

    @pytest.mark.anyio
    async def test_unexpected_customer_shape_raises_remote_api_error(self) -> None:
        """A customer without a name is an upstream fault, not a caller error."""
        service = make_service(lambda request: httpx.Response(200, json={"id": "cust-1"}))

        with pytest.raises(RemoteApiError):
            await service.upsert_customer(PosCustomer(name="Maria Santos"))

    @pytest.mark.anyio
    async def test_empty_upsert_body_raises_remote_api_error(self) -> None:
        service = make_service(lambda request: httpx.Response(200))

        with pytest.raises(RemoteApiError):
            await service.upsert_customer(PosCustomer(name="Maria Santos"))

    @pytest.mark.anyio
    async def test_network_failure_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = make_service(handler)

        with pytest.raises(TransportError) as exc_info:
            await service.get_customer("cust-1")

        assert exc_info.value.retryable is True

    @pytest.mark.anyio
    async def test_missing_token_fails_on_first_call(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The service can be constructed without a token; calls then fail."""
        monkeypatch.setattr(settings, "pos_api_token", None)
        monkeypatch.setattr(settings, "pos_api_token_secret_id", None)

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request should be sent")

        service = make_service(handler, token=None)

        with pytest.raises(ConfigurationError):
            await service.list_customers()

    @pytest.mark.anyio
    async def test_token_read_from_secret_manager(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "pos_api_token", None)
        monkeypatch.setattr(settings, "pos_api_token_secret_id", "pos-token")
        lookup_threads: list[int] = []

        def fake_get_secret(secret_id: str) -> str:
            lookup_threads.append(threading.get_ident())
            return f"from-{secret_id}"

        monkeypatch.setattr("src.services.pos_service.get_secret", fake_get_secret)
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"customers": []})

        service = make_service(handler, token=None)
        await service.list_customers()

        assert seen[0].headers["Authorization"] == "Bearer from-pos-token"
        # The blocking lookup runs off the event loop thread
        assert lookup_threads != [threading.get_ident()]
        assert len(lookup_threads) == 1


class TestListCustomers:
    """Tests for customer listing."""

    @pytest.mark.anyio
    async def test_single_page(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "customers": [{"id": "cust-1", "name": "Maria", "total_visits": 3}],
                    "cursor": "next",
                },
            )

        service = make_service(handler)
        page = await service.list_customers(cursor="abc", limit=10)

        assert seen[0].url.params["cursor"] == "abc"
        assert seen[0].url.params["limit"] == "10"
        assert page.cursor == "next"
        assert page.customers[0].total_visits == 3

    @pytest.mark.anyio
    async def test_follows_cursor_until_exhausted(self) -> None:
        pages = {
            None: {"customers": [{"id": "c1", "name": "A"}], "cursor": "p2"},
            "p2": {"customers": [{"id": "c2", "name": "B"}], "cursor": "p3"},
            "p3": {"customers": [{"id": "c3", "name": "C"}]},
        }
        cursors: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            cursor = request.url.params.get("cursor")
            cursors.append(cursor)
            return httpx.Response(200, json=pages[cursor])

        service = make_service(handler)
        customers = await service.list_all_customers()

        assert [c.id for c in customers] == ["c1", "c2", "c3"]
        assert cursors == [None, "p2", "p3"]

    @pytest.mark.anyio
    async def test_repeated_cursor_stops_pagination(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(
                200, json={"customers": [{"id": f"c{calls}", "name": "A"}], "cursor": "same"}
            )

        service = make_service(handler)
        customers = await service.list_all_customers()

        assert calls == 2
        assert len(customers) == 2


class TestWrites:
    """Tests for upsert and delete."""

    @pytest.mark.anyio
    async def test_upsert_omits_absent_fields(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            bodies.append(body)
            return httpx.Response(200, json={**body, "id": "cust-9"})

        service = make_service(handler)
        saved = await service.upsert_customer(
            PosCustomer(name="Maria Santos", email="maria@x.com")
        )

        assert saved.id == "cust-9"
        assert bodies[0]["name"] == "Maria Santos"
        assert "id" not in bodies[0]
        assert "phone_number" not in bodies[0]

    @pytest.mark.anyio
    async def test_delete_accepts_empty_response(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        service = make_service(handler)
        await service.delete_customer("cust-1")

        assert seen[0].method == "DELETE"
        assert seen[0].url.path == "/v1.0/customers/cust-1"


class TestHealthCheck:
    """Tests for health_check."""

    @pytest.mark.anyio
    async def test_healthy(self) -> None:
        service = make_service(lambda request: httpx.Response(200, json={"customers": []}))

        assert await service.health_check() is True

    @pytest.mark.anyio
    async def test_unhealthy(self) -> None:
        service = make_service(lambda request: httpx.Response(401, text="unauthorized"))

        assert await service.health_check() is False
