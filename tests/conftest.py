from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.utils.fakes import RecorderClient
from ticketwatch.services.dispatcher import CommandDispatcher
from ticketwatch.state import ViewState

pytest_plugins = ["nicegui.testing.user_plugin"]

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def recorder() -> RecorderClient:
    return RecorderClient()


@pytest.fixture
def view_state() -> ViewState:
    return ViewState()


@pytest.fixture
def dispatcher(recorder: RecorderClient, view_state: ViewState) -> CommandDispatcher:
    return CommandDispatcher(recorder, view_state.run)  # type: ignore[arg-type]


@pytest.fixture
def ui_log_targets() -> Iterator[None]:
    """Isolate the module-level ui.log registry between tests."""
    from ticketwatch.common import logging_config

    saved = set(logging_config._ui_log_targets)
    logging_config._ui_log_targets.clear()
    try:
        yield
    finally:
        logging_config._ui_log_targets.clear()
        logging_config._ui_log_targets.update(saved)
