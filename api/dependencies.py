"""
FastAPI dependencies.

The sale service is built once per process from the configured repository
backend. Tests replace it through `app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache

from config import get_settings
from repositories.sale_repository import create_sale_repository
from services.event_publisher import LoggingEventPublisher
from services.sale_service import SaleService


@lru_cache(maxsize=1)
def get_sale_service() -> SaleService:
    repository = create_sale_repository(get_settings())
    return SaleService(repository, LoggingEventPublisher())
