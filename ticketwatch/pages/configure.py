from __future__ import annotations

import logging

from nicegui import ui

from ticketwatch.services.dispatcher import positive_int
from ticketwatch.services.ticket_client import TicketApiClient, TicketApiError
from ticketwatch.state import CommandParams, SimulationConfig


class ConfigurePage:
    """One-shot ticket pool configuration form."""

    def __init__(
        self, client: TicketApiClient, config: SimulationConfig, params: CommandParams
    ) -> None:
        self.client = client
        self.config = config
        self.params = params

    async def submit(self) -> bool:
        """Validate and send the configuration; returns True if the service accepted it."""
        c = self.config
        values = [
            positive_int(v)
            for v in (
                c.total_tickets,
                c.ticket_release_rate,
                c.customer_retrieval_rate,
                c.max_ticket_capacity,
            )
        ]
        if any(v is None for v in values):
            ui.notify("All fields should have positive values.", color="warning")
            return False
        total, release_rate, retrieval_rate, capacity = values
        try:
            await self.client.configure(total, release_rate, retrieval_rate, capacity)
        except TicketApiError as e:
            logging.error("Configure failed: %s", e)
            ui.notify(
                "An error occurred while configuring the ticket pool. Please try again.",
                color="negative",
            )
            return False
        # Seed the control panel with the configured rates
        self.params.ticket_release_rate = release_rate
        self.params.customer_retrieval_rate = retrieval_rate
        logging.info(
            "Configured pool: total=%s release=%s retrieval=%s capacity=%s",
            total,
            release_rate,
            retrieval_rate,
            capacity,
        )
        ui.notify("Configuration applied successfully!", color="positive")
        return True

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Configuration").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2"):
                for label, attr in (
                    ("Total tickets", "total_tickets"),
                    ("Ticket release rate", "ticket_release_rate"),
                    ("Customer retrieval rate", "customer_retrieval_rate"),
                    ("Max ticket capacity", "max_ticket_capacity"),
                ):
                    ui.number(label=label, min=0, step=1, format="%d").bind_value(
                        self.config, attr
                    ).classes("w-40")
            ui.button("Apply", on_click=self.submit).props("unelevated color=primary")
