"""Route tests call handlers far more often than the per-minute limits allow."""

from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def _limiter_off():
    with patch("core.ratelimit.limiter.enabled", False):
        yield
