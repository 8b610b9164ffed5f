from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import pytest

from tests.utils.fakes import FakeChart, GatedClient
from ticketwatch.common import logging_config
from ticketwatch.common.chart import ChartSync, chart_options
from ticketwatch.common.logging_config import TRACE
from ticketwatch.services.poller import (
    MalformedStatusError,
    StatusPoller,
    parse_status,
)
from ticketwatch.services.ticket_client import TicketApiError

if TYPE_CHECKING:
    from tests.utils.fakes import RecorderClient
    from ticketwatch.state import ViewState


def _poller(client, state: ViewState, **kwargs) -> StatusPoller:
    return StatusPoller(client, state.samples, state.status, **kwargs)


@pytest.mark.unit
@pytest.mark.parametrize(
    "body, expected",
    [
        ("Tickets remaining: 7", 7),
        ("Tickets remaining: 0", 0),
        ("Tickets remaining:50", 50),
        ("  Tickets remaining :  12 \n", 12),
    ],
)
def test_parse_status(body: str, expected: int):
    assert parse_status(body) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "body",
    ["garbage", "", "Tickets remaining: ", "Tickets remaining: seven", "Tickets remaining: -3"],
)
def test_parse_status_rejects_malformed(body: str):
    with pytest.raises(MalformedStatusError):
        parse_status(body)


@pytest.mark.unit
async def test_tick_pushes_sample_and_tracks_sold_out(
    recorder: RecorderClient, view_state: ViewState
):
    recorder.status_bodies.extend(["Tickets remaining: 7", "Tickets remaining: 0"])
    poller = _poller(recorder, view_state)

    assert await poller.poll_once() is True
    assert view_state.samples.snapshot()[-1] == 7
    assert view_state.status.tickets_remaining == 7
    assert view_state.status.sold_out is False

    assert await poller.poll_once() is True
    assert view_state.samples.snapshot()[-2:] == [7, 0]
    assert view_state.status.sold_out is True


@pytest.mark.unit
@pytest.mark.parametrize(
    "failure",
    ["garbage", TicketApiError("/api/tickets/status", "connection refused")],
)
async def test_bad_tick_leaves_state_unchanged(
    recorder: RecorderClient, view_state: ViewState, failure
):
    recorder.status_bodies.extend(["Tickets remaining: 4", failure])
    redraws: list[None] = []
    poller = _poller(recorder, view_state, on_sample=lambda: redraws.append(None))

    await poller.poll_once()
    before = view_state.samples.snapshot()

    assert await poller.poll_once() is False
    assert view_state.samples.snapshot() == before
    assert view_state.status.tickets_remaining == 4
    assert view_state.status.sold_out is False
    assert len(redraws) == 1


@pytest.mark.unit
async def test_latest_issued_tick_wins_over_late_stale_one(view_state: ViewState):
    client = GatedClient()
    poller = _poller(client, view_state)

    first = asyncio.create_task(poller.poll_once())
    second = asyncio.create_task(poller.poll_once())
    await client.wait_pending(2)

    # Newer tick resolves first; the older one arrives late and must be discarded
    client.pending[1].set_result("Tickets remaining: 7")
    assert await second is True
    client.pending[0].set_result("Tickets remaining: 5")
    assert await first is False

    assert view_state.samples.snapshot()[-2:] == [0, 7]
    assert view_state.status.tickets_remaining == 7


@pytest.mark.unit
async def test_failed_newer_tick_does_not_block_older_success(view_state: ViewState):
    client = GatedClient()
    poller = _poller(client, view_state)

    first = asyncio.create_task(poller.poll_once())
    second = asyncio.create_task(poller.poll_once())
    await client.wait_pending(2)

    client.pending[1].set_exception(TicketApiError("/api/tickets/status", "timeout"))
    assert await second is False
    client.pending[0].set_result("Tickets remaining: 3")
    assert await first is True
    assert view_state.status.tickets_remaining == 3


@pytest.mark.unit
async def test_start_ticks_immediately_and_repeats(
    recorder: RecorderClient, view_state: ViewState
):
    recorder.status_bodies.append("Tickets remaining: 9")
    poller = _poller(recorder, view_state, interval_s=0.02)
    poller.start()
    try:
        await asyncio.sleep(0.005)
        assert poller.fetch_count == 1
        assert view_state.status.tickets_remaining == 9
        await asyncio.sleep(0.1)
        assert poller.fetch_count >= 3
    finally:
        poller.stop()


@pytest.mark.unit
async def test_start_twice_keeps_single_schedule(
    recorder: RecorderClient, view_state: ViewState
):
    poller = _poller(recorder, view_state, interval_s=10.0)
    poller.start()
    poller.start()
    try:
        await asyncio.sleep(0.01)
        assert poller.fetch_count == 1
    finally:
        poller.stop()


@pytest.mark.unit
async def test_stop_twice_cancels_once_and_ticks_cease(
    recorder: RecorderClient, view_state: ViewState
):
    poller = _poller(recorder, view_state, interval_s=0.01)
    poller.start()
    await asyncio.sleep(0.05)

    assert poller.stop() is True
    assert poller.stop() is False
    assert poller.running is False

    count = poller.fetch_count
    await asyncio.sleep(0.05)
    assert poller.fetch_count == count


@pytest.mark.unit
async def test_stop_before_first_tick_fetches_nothing(
    recorder: RecorderClient, view_state: ViewState
):
    poller = _poller(recorder, view_state, interval_s=0.01)
    poller.start()
    poller.stop()
    await asyncio.sleep(0.03)
    assert poller.fetch_count == 0
    assert recorder.calls == []


@pytest.mark.unit
async def test_context_manager_cancels_on_error(
    recorder: RecorderClient, view_state: ViewState
):
    poller = _poller(recorder, view_state, interval_s=0.01)
    with pytest.raises(RuntimeError):
        async with poller:
            await asyncio.sleep(0.02)
            raise RuntimeError("view torn down")
    assert poller.running is False
    count = poller.fetch_count
    await asyncio.sleep(0.03)
    assert poller.fetch_count == count


@pytest.mark.unit
async def test_slow_fetch_does_not_hold_back_cadence(view_state: ViewState):
    client = GatedClient()
    poller = _poller(client, view_state, interval_s=0.01)
    poller.start()
    try:
        await asyncio.sleep(0.05)
        # Nothing has resolved, yet later ticks were still issued
        assert len(client.pending) >= 3
    finally:
        poller.stop()
        for fut in client.pending:
            fut.set_result("Tickets remaining: 1")
        await asyncio.sleep(0.01)


@pytest.mark.unit
async def test_activation_to_sold_out_scenario(
    recorder: RecorderClient, view_state: ViewState
):
    chart = FakeChart(chart_options(view_state.samples.snapshot()))
    sync = ChartSync(view_state.samples)
    sync.attach(chart)
    poller = _poller(recorder, view_state, on_sample=sync.redraw)

    recorder.status_bodies.append("Tickets remaining: 50")
    await poller.poll_once()
    assert view_state.samples.snapshot() == [0, 0, 0, 0, 0, 0, 0, 0, 0, 50]
    assert view_state.status.sold_out is False
    assert chart.options["series"][0]["data"] == [0, 0, 0, 0, 0, 0, 0, 0, 0, 50]

    countdown = list(range(45, -1, -5))
    assert len(countdown) == 10
    recorder.status_bodies.extend(f"Tickets remaining: {v}" for v in countdown)
    for i, value in enumerate(countdown):
        await poller.poll_once()
        assert view_state.status.sold_out is (value == 0), f"tick {i} value {value}"

    assert view_state.samples.snapshot() == countdown
    assert chart.options["series"][0]["data"] == countdown
    assert chart.update_count == 11


@pytest.mark.unit
async def test_failing_redraw_is_logged_and_polling_continues(
    recorder: RecorderClient, view_state: ViewState, caplog: pytest.LogCaptureFixture
):
    def redraw() -> None:
        raise RuntimeError("The client this element belongs to has been deleted.")

    recorder.status_bodies.append("Tickets remaining: 6")
    poller = _poller(recorder, view_state, on_sample=redraw, interval_s=0.01)
    with caplog.at_level(logging.WARNING):
        poller.start()
        try:
            await asyncio.sleep(0.05)
        finally:
            poller.stop()

    assert poller.fetch_count >= 3
    assert view_state.status.tickets_remaining == 6
    failures = [r for r in caplog.records if "failed to apply" in r.getMessage()]
    assert failures and all(r.levelno == logging.WARNING for r in failures)
    # Tick tasks absorbed the error, so none finished with an exception
    assert all(not t.done() or t.exception() is None for t in poller._ticks)


@pytest.mark.unit
async def test_stale_tick_is_traced(
    view_state: ViewState, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
):
    monkeypatch.setattr(logging_config, "TRACE_ENABLED", True)
    client = GatedClient()
    poller = _poller(client, view_state)
    first = asyncio.create_task(poller.poll_once())
    second = asyncio.create_task(poller.poll_once())
    await client.wait_pending(2)

    with caplog.at_level(TRACE, logger="ticketwatch.services.poller"):
        client.pending[1].set_result("Tickets remaining: 2")
        await second
        client.pending[0].set_result("Tickets remaining: 1")
        await first

    stale = [r for r in caplog.records if "stale" in r.getMessage()]
    assert [r.levelname for r in stale] == ["TRACE"]
    assert stale[0].name == "ticketwatch.services.poller"
