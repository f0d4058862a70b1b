"""Test utilities for chainmux routers.

Provides an in-process async client and helpers for building middleware
that records the order it runs in::

    from chainmux.testing import TestClient, recorder
"""

from chainmux.testing.client import TestClient
from chainmux.testing.recording import Trace, recorder

__all__ = ["TestClient", "Trace", "recorder"]
