from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from ticketwatch.services.ticket_client import TicketApiError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ticketwatch.services.ticket_client import TicketApiClient
    from ticketwatch.state import RunState

Actor = Literal["vendor", "customer"]


@dataclass(frozen=True)
class Command:
    """One operator action: what it is called, what it flips and what it says."""

    label: str
    failure_message: str
    invalid_message: str = ""
    actor: Actor | None = None
    running_after: bool | None = None  # None: no run-state transition


START_VENDOR = Command(
    label="start vendor threads",
    invalid_message="Please specify valid values for vendors and ticket release rate.",
    failure_message="Failed to start vendor threads. Please try again.",
    actor="vendor",
    running_after=True,
)
STOP_VENDOR = Command(
    label="stop vendor threads",
    failure_message="Failed to stop vendor threads. Please try again.",
    actor="vendor",
    running_after=False,
)
START_CUSTOMER = Command(
    label="start customer threads",
    invalid_message="Please specify valid values for customers and retrieval rate.",
    failure_message="Failed to start customer threads. Please try again.",
    actor="customer",
    running_after=True,
)
STOP_CUSTOMER = Command(
    label="stop customer threads",
    failure_message="Failed to stop customer threads. Please try again.",
    actor="customer",
    running_after=False,
)
ADD_VENDOR = Command(
    label="add vendor",
    invalid_message="Please specify valid values for ticket release rate and tickets per release.",
    failure_message="Failed to add vendor. Please try again.",
)
REMOVE_VENDOR = Command(
    label="remove vendor",
    failure_message="Failed to remove vendor. Please try again.",
)
ADD_CUSTOMER = Command(
    label="add customer",
    invalid_message="Please specify valid values for customer retrieval rate and tickets per purchase.",
    failure_message="Failed to add customer. Please try again.",
)
REMOVE_CUSTOMER = Command(
    label="remove customer",
    failure_message="Failed to remove customer. Please try again.",
)


def positive_int(value) -> int | None:
    """Return value as an int if it is a strictly positive whole number, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number <= 0 or not number.is_integer():
        return None
    return int(number)


class CommandDispatcher:
    """
    Turns operator actions into exactly one remote command each.

    Parameters are validated locally first; an invalid action sets the error
    message and never touches the network. On completion the run state is
    updated optimistically: start/stop flip the actor's running flag on
    success, every success clears the error and every failure sets the
    action's fixed message. Nothing here raises.
    """

    def __init__(self, client: TicketApiClient, run_state: RunState) -> None:
        self.client = client
        self.run_state = run_state

    async def _dispatch(
        self, command: Command, send: Callable[[], Awaitable[object]]
    ) -> bool:
        try:
            await send()
        except TicketApiError as e:
            logging.error("Failed to %s: %s", command.label, e)
            self.run_state.error_message = command.failure_message
            return False
        if command.actor == "vendor" and command.running_after is not None:
            self.run_state.vendor_running = command.running_after
        elif command.actor == "customer" and command.running_after is not None:
            self.run_state.customer_running = command.running_after
        self.run_state.error_message = ""
        logging.info("Sent %s", command.label)
        return True

    def _validate(self, command: Command, *values) -> list[int] | None:
        checked = [positive_int(v) for v in values]
        if any(v is None for v in checked):
            logging.warning("Rejected %s: invalid parameters %s", command.label, values)
            self.run_state.error_message = command.invalid_message
            return None
        return checked  # type: ignore[return-value]

    # ---- Vendors ----

    async def start_vendor(self, vendor_count, release_rate, tickets_per_release) -> bool:
        checked = self._validate(START_VENDOR, vendor_count, release_rate, tickets_per_release)
        if checked is None:
            return False
        count, rate, per_release = checked
        return await self._dispatch(
            START_VENDOR,
            lambda: self.client.start_vendor_threads(count, rate, per_release),
        )

    async def stop_vendor(self) -> bool:
        return await self._dispatch(STOP_VENDOR, self.client.stop_vendor_threads)

    async def add_vendor(self, release_rate, tickets_per_release) -> bool:
        checked = self._validate(ADD_VENDOR, release_rate, tickets_per_release)
        if checked is None:
            return False
        rate, per_release = checked
        return await self._dispatch(
            ADD_VENDOR, lambda: self.client.add_vendor(rate, per_release)
        )

    async def remove_vendor(self) -> bool:
        return await self._dispatch(REMOVE_VENDOR, self.client.remove_vendor)

    # ---- Customers ----

    async def start_customer(
        self, customer_count, retrieval_rate, tickets_per_purchase
    ) -> bool:
        checked = self._validate(
            START_CUSTOMER, customer_count, retrieval_rate, tickets_per_purchase
        )
        if checked is None:
            return False
        count, rate, per_purchase = checked
        return await self._dispatch(
            START_CUSTOMER,
            lambda: self.client.start_customer_threads(count, rate, per_purchase),
        )

    async def stop_customer(self) -> bool:
        return await self._dispatch(STOP_CUSTOMER, self.client.stop_customer_threads)

    async def add_customer(self, retrieval_rate, tickets_per_purchase) -> bool:
        checked = self._validate(ADD_CUSTOMER, retrieval_rate, tickets_per_purchase)
        if checked is None:
            return False
        rate, per_purchase = checked
        return await self._dispatch(
            ADD_CUSTOMER, lambda: self.client.add_customer(rate, per_purchase)
        )

    async def remove_customer(self) -> bool:
        return await self._dispatch(REMOVE_CUSTOMER, self.client.remove_customer)
