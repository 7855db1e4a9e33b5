"""
POS (Loyverse) customer API client.

A thin authenticated transport over the customer resource: list, get,
upsert and delete. The client never retries; callers decide what to do
with a failed call.
"""

import asyncio
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from src.exceptions import ConfigurationError, RemoteApiError, TransportError
from src.schemas.pos import CustomerPage, PosCustomer
from src.settings import settings
from src.utils.secret_manager import get_secret

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class PosService:
    """HTTP client for the POS customer API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.pos_api_url).rstrip("/")
        self.timeout = timeout or settings.pos_api_timeout
        self._token = token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _resolve_token(self) -> str:
        """
        Find the bearer token.

        Resolved on the first request rather than at construction, so the
        service can be wired up without credentials as long as it is never
        called. The Secret Manager client is blocking and runs in a thread.
        """
        if not self._token:
            if settings.pos_api_token:
                self._token = settings.pos_api_token
            elif settings.pos_api_token_secret_id:
                self._token = await asyncio.to_thread(
                    get_secret, settings.pos_api_token_secret_id
                )
        if not self._token:
            raise ConfigurationError(
                "POS API token is required. "
                "Set POS_API_TOKEN or POS_API_TOKEN_SECRET_ID environment variable."
            )
        return self._token

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        model: type[ModelT] | None = None,
        **kwargs: Any,
    ) -> Any:
        """
        Perform an authenticated request and decode the JSON body.

        If `model` is given the body is validated into it; an empty body is
        validated as `{}`.

        Raises:
            ConfigurationError: If no token is configured
            RemoteApiError: If the API returns a non-success status or a body
                that is not the expected JSON
            TransportError: If the request could not be completed
        """
        headers = {"Authorization": f"Bearer {await self._resolve_token()}"}
        client = await self._get_client()

        logger.debug("POS API %s %s", method, path)
        try:
            response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise TransportError(f"POS API request failed: {e}") from e

        if not response.is_success:
            raise RemoteApiError(response.status_code, response.text)

        try:
            data = response.json() if response.content else None
            if model is None:
                return data
            return model.model_validate(data if data is not None else {})
        except (ValueError, ValidationError) as e:
            raise RemoteApiError(
                response.status_code,
                response.text,
                f"Unexpected POS API response for {method} {path}: {e}",
            ) from e

    async def list_customers(
        self,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> CustomerPage:
        """
        Get one page of customers.

        Args:
            cursor: Cursor returned by the previous page, if any
            limit: Maximum number of customers in the page

        Returns:
            CustomerPage with the customers and the next cursor
        """
        params: dict[str, Any] = {}
        if cursor:
            params["cursor"] = cursor
        if limit:
            params["limit"] = limit

        return await self._request("GET", "/customers", CustomerPage, params=params)

    async def list_all_customers(self) -> list[PosCustomer]:
        """Follow the listing cursor until exhausted and concatenate pages."""
        customers: list[PosCustomer] = []
        cursor: str | None = None

        while True:
            page = await self.list_customers(cursor=cursor, limit=settings.pos_page_size)
            customers.extend(page.customers)
            if not page.cursor or page.cursor == cursor:
                break
            cursor = page.cursor

        logger.info("Fetched %d POS customers", len(customers))
        return customers

    async def get_customer(self, customer_id: str) -> PosCustomer:
        """Get a single customer by ID."""
        return await self._request("GET", f"/customers/{customer_id}", PosCustomer)

    async def upsert_customer(self, customer: PosCustomer) -> PosCustomer:
        """
        Create or update a customer.

        The POS updates the customer when `customer.id` is set and creates a
        new one otherwise.

        Returns:
            The customer as stored by the POS, including its ID
        """
        return await self._request(
            "POST", "/customers", PosCustomer, json=customer.to_payload()
        )

    async def delete_customer(self, customer_id: str) -> None:
        """Delete a customer."""
        await self._request("DELETE", f"/customers/{customer_id}")

    async def health_check(self) -> bool:
        """Check that the POS API is reachable with the configured token."""
        try:
            await self.list_customers(limit=1)
            return True
        except Exception:
            return False
