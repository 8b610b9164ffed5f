from __future__ import annotations

import logging

import httpx

from ticketwatch.common import logging_config  # noqa: F401  (installs Logger.trace)
from ticketwatch.constants import API_PREFIX, API_URL, HTTP_TIMEOUT_S

logger = logging.getLogger(__name__)


class TicketApiError(Exception):
    """A remote call failed, either in transport or with a non-success status."""

    def __init__(self, path: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.status_code = status_code


class TicketApiClient:
    """
    Async HTTP client for the ticket simulation service.

    Every parameter travels as a query-string integer and every POST has an
    empty body. Any 2xx response is success; everything else, including
    transport errors, is raised as TicketApiError.
    """

    def __init__(
        self,
        base_url: str = API_URL,
        timeout: float = HTTP_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._closed = False

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, value: str) -> None:
        # Only valid before the first request; the pooled client keeps its URL
        if self._http is not None:
            raise RuntimeError("Cannot change base_url after the client is open")
        self._base_url = value.rstrip("/")

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http

    async def aclose(self) -> None:
        """Release the pooled connection. The client cannot be reopened afterwards."""
        self._closed = True
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, int] | None = None
    ) -> str:
        path = f"{API_PREFIX}/{endpoint}"
        if self._closed:
            raise TicketApiError(path, "client is closed")
        try:
            resp = await self._client().request(method, path, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TicketApiError(
                path, f"HTTP {e.response.status_code}", e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise TicketApiError(path, str(e) or type(e).__name__) from e
        logger.trace("%s %s -> %s", method, path, resp.status_code)  # type: ignore[attr-defined]
        return resp.text

    async def _post(self, endpoint: str, **params: int) -> str:
        return await self._request(
            "POST", endpoint, {k: int(v) for k, v in params.items()} or None
        )

    # ---- Commands ----

    async def configure(
        self,
        total_tickets: int,
        ticket_release_rate: int,
        customer_retrieval_rate: int,
        max_ticket_capacity: int,
    ) -> str:
        return await self._post(
            "configure",
            totalTickets=total_tickets,
            ticketReleaseRate=ticket_release_rate,
            customerRetrievalRate=customer_retrieval_rate,
            maxTicketCapacity=max_ticket_capacity,
        )

    async def start_vendor_threads(
        self, vendor_count: int, ticket_release_rate: int, tickets_per_release: int
    ) -> str:
        return await self._post(
            "startVendorThreads",
            vendorCount=vendor_count,
            ticketReleaseRate=ticket_release_rate,
            ticketsPerRelease=tickets_per_release,
        )

    async def stop_vendor_threads(self) -> str:
        return await self._post("stopVendorThreads")

    async def start_customer_threads(
        self,
        customer_count: int,
        customer_retrieval_rate: int,
        tickets_per_purchase: int,
    ) -> str:
        return await self._post(
            "startCustomerThreads",
            customerCount=customer_count,
            customerRetrievalRate=customer_retrieval_rate,
            ticketsPerPurchase=tickets_per_purchase,
        )

    async def stop_customer_threads(self) -> str:
        return await self._post("stopCustomerThreads")

    async def add_vendor(self, ticket_release_rate: int, tickets_per_release: int) -> str:
        return await self._post(
            "addVendor",
            ticketReleaseRate=ticket_release_rate,
            ticketsPerRelease=tickets_per_release,
        )

    async def remove_vendor(self) -> str:
        return await self._post("removeVendor")

    async def add_customer(
        self, customer_retrieval_rate: int, tickets_per_purchase: int
    ) -> str:
        return await self._post(
            "addCustomer",
            customerRetrievalRate=customer_retrieval_rate,
            ticketsPerPurchase=tickets_per_purchase,
        )

    async def remove_customer(self) -> str:
        return await self._post("removeCustomer")

    # ---- Queries ----

    async def status(self) -> str:
        return await self._request("GET", "status")

    async def logs(self) -> str:
        return await self._request("GET", "logs")


# Module-level singleton instance
client = TicketApiClient()
