from __future__ import annotations

from nicegui import ui

from ticketwatch.common.logging_config import attach_ui_log, detach_ui_log
from ticketwatch.services.dispatcher import CommandDispatcher
from ticketwatch.state import CommandParams, RunState


def _running_text(kind: str):
    return lambda running: f"{kind}: {'running' if running else 'stopped'}"


class ControlPage:
    """Vendor/customer controls backed by a CommandDispatcher."""

    def __init__(
        self, dispatcher: CommandDispatcher, params: CommandParams, run_state: RunState
    ) -> None:
        self.dispatcher = dispatcher
        self.params = params
        self.run_state = run_state
        self.error_label: ui.label | None = None
        self.activity_log: ui.log | None = None

    # ---- Actions ----
    # Click handlers; NiceGUI runs async handlers as background tasks

    async def start_vendor(self) -> None:
        p = self.params
        await self.dispatcher.start_vendor(
            p.vendor_count, p.ticket_release_rate, p.tickets_per_release
        )

    async def stop_vendor(self) -> None:
        await self.dispatcher.stop_vendor()

    async def add_vendor(self) -> None:
        p = self.params
        await self.dispatcher.add_vendor(p.ticket_release_rate, p.tickets_per_release)

    async def remove_vendor(self) -> None:
        await self.dispatcher.remove_vendor()

    async def start_customer(self) -> None:
        p = self.params
        await self.dispatcher.start_customer(
            p.customer_count, p.customer_retrieval_rate, p.tickets_per_purchase
        )

    async def stop_customer(self) -> None:
        await self.dispatcher.stop_customer()

    async def add_customer(self) -> None:
        p = self.params
        await self.dispatcher.add_customer(
            p.customer_retrieval_rate, p.tickets_per_purchase
        )

    async def remove_customer(self) -> None:
        await self.dispatcher.remove_customer()

    # ---- UI ----

    def _number(self, label: str, attr: str) -> ui.number:
        return (
            ui.number(label=label, min=0, step=1, format="%d")
            .bind_value(self.params, attr)
            .classes("w-40")
        )

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Vendors").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2"):
                self._number("Vendor count", "vendor_count")
                self._number("Ticket release rate", "ticket_release_rate")
                self._number("Tickets per release", "tickets_per_release")
            with ui.row().classes("items-center gap-2"):
                ui.button("Start vendors", on_click=self.start_vendor).props(
                    "unelevated color=positive"
                )
                ui.button("Stop vendors", on_click=self.stop_vendor).props(
                    "unelevated color=negative"
                )
                ui.button("Add vendor", on_click=self.add_vendor).props("unelevated")
                ui.button("Remove vendor", on_click=self.remove_vendor).props(
                    "unelevated"
                )
                ui.label().bind_text_from(
                    self.run_state, "vendor_running", backward=_running_text("Vendors")
                ).classes("text-sm")

        with ui.card().classes("w-full"):
            ui.label("Customers").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2"):
                self._number("Customer count", "customer_count")
                self._number("Customer retrieval rate", "customer_retrieval_rate")
                self._number("Tickets per purchase", "tickets_per_purchase")
            with ui.row().classes("items-center gap-2"):
                ui.button("Start customers", on_click=self.start_customer).props(
                    "unelevated color=positive"
                )
                ui.button("Stop customers", on_click=self.stop_customer).props(
                    "unelevated color=negative"
                )
                ui.button("Add customer", on_click=self.add_customer).props(
                    "unelevated"
                )
                ui.button("Remove customer", on_click=self.remove_customer).props(
                    "unelevated"
                )
                ui.label().bind_text_from(
                    self.run_state,
                    "customer_running",
                    backward=_running_text("Customers"),
                ).classes("text-sm")

        self.error_label = (
            ui.label()
            .bind_text_from(self.run_state, "error_message")
            .bind_visibility_from(self.run_state, "error_message", backward=bool)
            .classes("text-sm text-negative")
        )

        with ui.card().classes("w-full"):
            ui.label("Client activity").classes("text-md font-medium")
            self.activity_log = ui.log(max_lines=200).classes("w-full h-40 text-xs")

    def attach_log(self) -> None:
        if self.activity_log is not None:
            attach_ui_log(self.activity_log)

    def close(self) -> None:
        if self.activity_log is not None:
            detach_ui_log(self.activity_log)
