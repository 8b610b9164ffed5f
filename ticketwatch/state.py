from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from nicegui import binding

from ticketwatch.constants import HISTORY_LENGTH


class SampleBuffer:
    """Fixed-capacity FIFO of the most recent tickets-remaining samples.

    Starts zero-filled so the chart always has ``capacity`` points; pushing into
    a full buffer evicts the oldest sample first.
    """

    def __init__(self, capacity: int = HISTORY_LENGTH) -> None:
        if capacity <= 0:
            raise ValueError("SampleBuffer capacity must be > 0")
        self.capacity = capacity
        self._samples: deque[int] = deque([0] * capacity, maxlen=capacity)

    def push(self, sample: int) -> None:
        if sample < 0:
            raise ValueError(f"Sample must be >= 0, got {sample}")
        self._samples.append(int(sample))

    def snapshot(self) -> list[int]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)


@binding.bindable_dataclass
class TicketStatus:
    tickets_remaining: int = 0
    sold_out: bool = False
    last_update_ts: float = 0.0


# Optimistic; only the dispatcher writes it and pollers never correct it
@binding.bindable_dataclass
class RunState:
    vendor_running: bool = False
    customer_running: bool = False
    error_message: str = ""


# Operator inputs; None means the field was left empty
@binding.bindable_dataclass
class CommandParams:
    vendor_count: float | None = 0
    customer_count: float | None = 0
    ticket_release_rate: float | None = 0
    customer_retrieval_rate: float | None = 0
    tickets_per_release: float | None = 0
    tickets_per_purchase: float | None = 0


@binding.bindable_dataclass
class LogState:
    lines: list[str] = field(default_factory=list)
    last_update_ts: float = 0.0


@binding.bindable_dataclass
class SimulationConfig:
    total_tickets: float | None = 0
    ticket_release_rate: float | None = 0
    customer_retrieval_rate: float | None = 0
    max_ticket_capacity: float | None = 0


@dataclass
class ViewState:
    """Everything one browser view owns; created per page visit."""

    samples: SampleBuffer = field(default_factory=SampleBuffer)
    status: TicketStatus = field(default_factory=TicketStatus)
    run: RunState = field(default_factory=RunState)
    params: CommandParams = field(default_factory=CommandParams)
    logs: LogState = field(default_factory=LogState)
    config: SimulationConfig = field(default_factory=SimulationConfig)
