from __future__ import annotations

import pytest

from carbon_tycoon.logs import silence_logging


@pytest.fixture(autouse=True)
def quiet_logger():
    silence_logging()
    yield
