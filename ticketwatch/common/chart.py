from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from nicegui import ui

from ticketwatch.constants import CHART_Y_MAX, CHART_Y_STEP

if TYPE_CHECKING:
    from ticketwatch.state import SampleBuffer


class ChartLike(Protocol):
    options: dict[str, Any]

    def update(self) -> None: ...


def chart_options(samples: list[int]) -> dict[str, Any]:
    """ECharts options for the tickets-remaining line chart."""
    return {
        "animation": False,
        "tooltip": {"trigger": "axis"},
        "grid": {"left": 48, "right": 16, "top": 24, "bottom": 40},
        "xAxis": {
            "type": "category",
            "name": "Time",
            "nameLocation": "middle",
            "nameGap": 26,
            "data": [str(i + 1) for i in range(len(samples))],
        },
        "yAxis": {
            "type": "value",
            "name": "Tickets Remaining",
            "min": 0,
            "max": CHART_Y_MAX,
            "interval": CHART_Y_STEP,
            "minInterval": 1,
        },
        "series": [
            {
                "name": "Tickets Remaining",
                "type": "line",
                "data": list(samples),
                "smooth": 0.1,
                "color": "rgb(75, 192, 192)",
                "animation": False,
            }
        ],
    }


class ChartSync:
    """Keeps one line chart in step with a SampleBuffer."""

    def __init__(self, samples: SampleBuffer) -> None:
        self.samples = samples
        self.chart: ChartLike | None = None

    def build(self) -> ui.echart:
        chart = ui.echart(chart_options(self.samples.snapshot())).classes("w-full h-64")
        self.attach(chart)
        return chart

    def attach(self, chart: ChartLike) -> None:
        self.chart = chart

    def redraw(self) -> None:
        # Mutates the existing series in place; never rebuilds the chart
        if self.chart is None:
            return
        data = self.samples.snapshot()
        logging.debug("Redrawing chart with %s", data)
        self.chart.options["series"][0]["data"] = data
        self.chart.update()
