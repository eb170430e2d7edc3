"""
Pytest configuration for the sales test suite.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides shared fixtures for the
service and API tests.
"""

import random
import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from repositories.memory_sale_repository import InMemorySaleRepository  # noqa: E402
from services.event_publisher import RecordingEventPublisher  # noqa: E402
from services.sale_service import SaleService  # noqa: E402


@pytest.fixture
def repository() -> InMemorySaleRepository:
    return InMemorySaleRepository()


@pytest.fixture
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def service(repository, publisher) -> SaleService:
    return SaleService(repository, publisher, rng=random.Random(0))
