"""Unit-test fixtures."""
from unittest.mock import AsyncMock

import pytest

from tests.unit.factories import InMemoryOrderRepository


@pytest.fixture
def order_repo() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()
