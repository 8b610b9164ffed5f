from __future__ import annotations

import argparse
import logging
import sys
import weakref

from nicegui import app as ng_app
from nicegui import ui

from ticketwatch.common.logging_config import TRACE, configure_logging
from ticketwatch.constants import (
    API_URL,
    LOG_LEVEL,
    LOG_POLL_INTERVAL_S,
    SERVER_HOST,
    SERVER_PORT,
    STATUS_POLL_INTERVAL_S,
)
from ticketwatch.pages.configure import ConfigurePage
from ticketwatch.pages.control import ControlPage
from ticketwatch.pages.monitor import MonitorPage
from ticketwatch.services.dispatcher import CommandDispatcher
from ticketwatch.services.poller import LogPoller, StatusPoller
from ticketwatch.services.ticket_client import TicketApiClient, client
from ticketwatch.state import ViewState


class TicketView:
    """
    One browser view: its own sample buffer, pollers, dispatcher and run state.

    start() runs on every (re)connect and close() on every disconnect, so the
    pollers only fetch while a browser is attached to this view.
    """

    def __init__(
        self,
        api: TicketApiClient,
        status_interval_s: float = STATUS_POLL_INTERVAL_S,
        log_interval_s: float = LOG_POLL_INTERVAL_S,
    ) -> None:
        self.api = api
        self.state = ViewState()
        self.dispatcher = CommandDispatcher(api, self.state.run)
        self.monitor_page = MonitorPage(
            self.state.samples, self.state.status, self.state.logs
        )
        self.control_page = ControlPage(
            self.dispatcher, self.state.params, self.state.run
        )
        self.configure_page = ConfigurePage(api, self.state.config, self.state.params)
        self.status_poller = StatusPoller(
            api,
            self.state.samples,
            self.state.status,
            on_sample=self.monitor_page.on_sample,
            interval_s=status_interval_s,
        )
        self.log_poller = LogPoller(
            api,
            self.state.logs,
            on_lines=self.monitor_page.show_lines,
            interval_s=log_interval_s,
        )

    def build(self) -> None:
        with ui.header().classes("items-center justify-between px-4"):
            ui.label("Ticket Simulation Monitor").classes("text-lg")
            ui.label(self.api.base_url).classes("text-xs")
        with ui.column().classes("w-full p-4 gap-4"):
            self.configure_page.build()
            self.control_page.build()
            self.monitor_page.build()

    def start(self) -> None:
        self.status_poller.start()
        self.log_poller.start()
        self.control_page.attach_log()

    def close(self) -> None:
        self.status_poller.stop()
        self.log_poller.stop()
        self.control_page.close()
        logging.debug("View closed")


# Live views by NiceGUI client id; entries go away with their client
views: weakref.WeakValueDictionary[str, TicketView] = weakref.WeakValueDictionary()


@ui.page("/")
def index() -> None:
    view = TicketView(client)
    view.build()
    views[ui.context.client.id] = view
    # Polling starts with the websocket handshake (first connect included). A
    # client that never connects is pruned without disconnect handlers, so it
    # must never have started anything.
    ui.context.client.on_connect(view.start)
    ui.context.client.on_disconnect(view.close)


async def shutdown() -> None:
    for view in list(views.values()):
        view.close()
    await client.aclose()


ng_app.on_shutdown(shutdown)


def main() -> None:
    parser = argparse.ArgumentParser(description="Ticket simulation NiceGUI monitor")
    parser.add_argument("--host", default=SERVER_HOST, help="Webserver bind host")
    parser.add_argument(
        "--port", type=int, default=SERVER_PORT, help="Webserver bind port"
    )
    parser.add_argument(
        "--api-url", default=API_URL, help="Ticket simulation service base URL"
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Enable WARNING logging"
    )
    args, _ = parser.parse_known_args()

    client.base_url = args.api_url

    # Resolve log level priority: explicit --log-level > -v/-q > env default from constants
    if args.log_level:
        if args.log_level == "TRACE":
            log_level = TRACE
        else:
            log_level = getattr(logging, args.log_level)
    elif args.verbose >= 3:
        log_level = TRACE
    elif args.verbose >= 2:
        log_level = logging.DEBUG
    elif args.verbose == 1:
        log_level = logging.INFO
    elif args.quiet:
        log_level = logging.WARNING
    else:
        log_level = LOG_LEVEL

    configure_logging(log_level)
    logging.info("Webserver bind: host=%s port=%s", args.host, args.port)
    logging.info("Ticket service: %s", client.base_url)

    ui.run(
        title="Ticket Simulation Monitor",
        host=args.host,
        port=int(args.port),
        reload=False,
        show=False,
        loop="uvloop" if sys.platform != "win32" else "asyncio",
        http="httptools",
        ws="wsproto",
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
