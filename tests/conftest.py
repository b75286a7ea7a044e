import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from mock_services import mock_erp, mock_storefront
from sync_service.clients import ErpClient, StorefrontClient
from sync_service.config import Settings
from sync_service.main import create_app

WEBHOOK_SECRET = "whsec_test"
LOCATION_ID = "5550"


def make_settings(**overrides) -> Settings:
    values = {
        "ODOO_URL": "http://erp.test/jsonrpc",
        "ODOO_DB": mock_erp.MOCK_DB,
        "ODOO_USER": mock_erp.MOCK_USER,
        "ODOO_PASSWORD": mock_erp.MOCK_PASSWORD,
        "SHOPIFY_STORE_URL": "shop.test",
        "SHOPIFY_ACCESS_TOKEN": mock_storefront.MOCK_ACCESS_TOKEN,
        "SHOPIFY_LOCATION_ID": LOCATION_ID,
        "SHOPIFY_WEBHOOK_SECRET": WEBHOOK_SECRET,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def erp_client_for(settings: Settings) -> ErpClient:
    return ErpClient(settings, transport=httpx.ASGITransport(app=mock_erp.app))


def storefront_client_for(settings: Settings) -> StorefrontClient:
    return StorefrontClient(settings, transport=httpx.ASGITransport(app=mock_storefront.app))


@pytest.fixture(autouse=True)
def reset_mocks():
    mock_erp.reset()
    mock_storefront.reset()
    yield


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def erp(settings):
    client = erp_client_for(settings)
    yield client
    asyncio.run(client.aclose())


@pytest.fixture
def storefront(settings):
    client = storefront_client_for(settings)
    yield client
    asyncio.run(client.aclose())


@pytest.fixture
def client(settings, erp, storefront):
    app = create_app(settings, erp_client=erp, storefront_client=storefront)
    with TestClient(app) as c:
        yield c
