from __future__ import annotations

from nicegui import ui

from ticketwatch.common.chart import ChartSync
from ticketwatch.state import LogState, SampleBuffer, TicketStatus


class MonitorPage:
    """Live tickets-remaining chart and the tailed remote log."""

    def __init__(self, samples: SampleBuffer, status: TicketStatus, logs: LogState) -> None:
        self.status = status
        self.logs = logs
        self.chart_sync = ChartSync(samples)
        self.remaining_label: ui.label | None = None
        self.sold_out_badge: ui.badge | None = None
        self.log_view: ui.log | None = None

    def on_sample(self) -> None:
        self.chart_sync.redraw()

    def show_lines(self, lines: list[str]) -> None:
        """Replace the log view with the latest remote log."""
        if self.log_view is None:
            return
        self.log_view.clear()
        # One row per remote line. ui.log.push() runs splitlines() and would
        # drop blank lines, so the rows are added directly.
        with self.log_view:
            for line in lines:
                ui.label(line).style("min-height: 1em")

    def build(self) -> None:
        with ui.card().classes("w-full"):
            with ui.row().classes("items-center justify-between w-full"):
                ui.label("Ticket pool").classes("text-md font-medium")
                self.sold_out_badge = (
                    ui.badge("SOLD OUT", color="negative")
                    .bind_visibility_from(self.status, "sold_out")
                )
            self.remaining_label = (
                ui.label("Tickets remaining: -")
                .bind_text_from(
                    self.status,
                    "tickets_remaining",
                    backward=lambda v: f"Tickets remaining: {v}",
                )
                .classes("text-sm")
            )
            self.chart_sync.build()

        with ui.card().classes("w-full"):
            ui.label("Simulation log").classes("text-md font-medium")
            self.log_view = ui.log().classes("w-full h-64 text-xs")
