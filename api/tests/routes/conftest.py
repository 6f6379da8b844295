"""Route test configuration."""

from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Exports and health probes are rate limited; tests hit them repeatedly."""
    with patch("core.ratelimit.limiter.enabled", False):
        yield
