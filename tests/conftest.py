"""
Shared fixtures.
"""

from __future__ import annotations

import pytest

from fakes import FakeDecoder


@pytest.fixture
def decoder() -> FakeDecoder:
    return FakeDecoder()
