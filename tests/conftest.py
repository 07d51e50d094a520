"""Shared fixtures: a throwaway SQLite store and synthetic adapters."""

from typing import Any

import pytest
import pytest_asyncio

from localbiz.integrations.generators import SyntheticWebsiteGenerator
from localbiz.integrations.places import SyntheticPlacesClient
from localbiz.integrations.vercel import SyntheticVercelClient
from localbiz.store import BusinessStore


@pytest_asyncio.fixture
async def store(tmp_path):
    """A fresh store backed by a SQLite file in the test's temp directory."""
    business_store = BusinessStore.from_url(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await business_store.initialize()
    yield business_store
    await business_store.close()


@pytest.fixture
def places():
    return SyntheticPlacesClient(detail_delay_seconds=0)


@pytest.fixture
def generator():
    return SyntheticWebsiteGenerator()


@pytest.fixture
def deployer():
    return SyntheticVercelClient()


@pytest.fixture
def business_data():
    """Factory for business insert payloads with sensible defaults."""

    def _make(**overrides: Any) -> dict[str, Any]:
        data = {
            "name": "Classic Cuts",
            "business_type": "Barber Shops",
            "category": "barber_shop",
            "address": "112 Jackson Avenue",
            "city": "Oxford",
            "state": "MS",
            "phone": "(662) 555-0101",
            "source": "manual",
        }
        data.update(overrides)
        return data

    return _make
