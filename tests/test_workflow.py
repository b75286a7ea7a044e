import asyncio

import httpx
import pytest

from conftest import LOCATION_ID, make_settings, erp_client_for, storefront_client_for
from mock_services import mock_erp, mock_storefront
from sync_service.clients import StorefrontClient
from sync_service.exceptions import NoValidProductsError, RemoteFault
from sync_service.models import OrderNotification, StockNotification
from sync_service.workflow import relay_order, relay_stock


def run(coro):
    return asyncio.run(coro)


def make_order(line_items, name="#1001", email="a@b.com", **extra) -> OrderNotification:
    payload = {
        "name": name,
        "email": email,
        "customer": {"first_name": "A", "last_name": "B"},
        "line_items": line_items,
    }
    payload.update(extra)
    return OrderNotification.model_validate(payload)


def line(sku, quantity=1, price="1.00", title=None):
    return {"sku": sku, "quantity": quantity, "price": price, "title": title or f"Item {sku}"}


# --- Order relay ---

def test_order_is_created_and_confirmed(erp):
    product_id = mock_erp.add_product("X1")
    order = make_order([line("X1", 2, "9.99", "Widget")])

    response = run(relay_order(order, erp))

    sale = mock_erp.sale_orders[response.sale_id]
    assert response.success is True
    assert sale["state"] == "sale"
    assert sale["client_order_ref"] == "#1001"
    assert sale["order_line"] == [
        [0, 0, {"product_id": product_id, "product_uom_qty": 2, "price_unit": 9.99, "name": "Widget"}]
    ]


def test_only_matched_lines_are_kept_in_original_order(erp):
    product_b = mock_erp.add_product("B")
    product_a = mock_erp.add_product("A")
    order = make_order([line("B", 1.5, "10.50"), line("MISSING", 3), line("A", 4, "0.99")])

    response = run(relay_order(order, erp))

    lines = [values for _, _, values in mock_erp.sale_orders[response.sale_id]["order_line"]]
    assert [l["product_id"] for l in lines] == [product_b, product_a]
    assert [l["product_uom_qty"] for l in lines] == [1.5, 4]
    assert [l["price_unit"] for l in lines] == [10.5, 0.99]


def test_line_without_sku_is_skipped(erp):
    mock_erp.add_product("X1")
    order = make_order([line(None, 1), line("X1", 1)])

    response = run(relay_order(order, erp))

    assert len(mock_erp.sale_orders[response.sale_id]["order_line"]) == 1


def test_existing_partner_is_reused(erp):
    partner_id = mock_erp.add_partner("Old Name", "a@b.com")
    mock_erp.add_product("X1")

    response = run(relay_order(make_order([line("X1")]), erp))

    assert mock_erp.calls_to("res.partner", "create") == []
    assert mock_erp.sale_orders[response.sale_id]["partner_id"] == partner_id
    # never updated on repeat orders
    assert mock_erp.partners[partner_id]["name"] == "Old Name"


def test_new_partner_is_created_once_with_full_name_and_phone(erp):
    mock_erp.add_product("X1")

    response = run(relay_order(make_order([line("X1")], phone="+49 30 1234"), erp))

    creates = mock_erp.calls_to("res.partner", "create")
    assert len(creates) == 1
    partner_id = mock_erp.sale_orders[response.sale_id]["partner_id"]
    assert mock_erp.partners[partner_id]["name"] == "A B"
    assert mock_erp.partners[partner_id]["email"] == "a@b.com"
    assert mock_erp.partners[partner_id]["phone"] == "+49 30 1234"


def test_no_matching_products_creates_no_sale_order(erp):
    order = make_order([line("NOPE-1"), line("NOPE-2")])

    with pytest.raises(NoValidProductsError):
        run(relay_order(order, erp))

    assert mock_erp.calls_to("sale.order", "create") == []
    assert mock_erp.sale_orders == {}


def test_product_lookup_fault_aborts_order(erp):
    mock_erp.add_product("X1")
    order = make_order([line("X1"), line("FAULT-1")])

    with pytest.raises(RemoteFault):
        run(relay_order(order, erp))

    assert mock_erp.sale_orders == {}


def test_failed_confirmation_leaves_draft_order(erp):
    mock_erp.add_product("X1")
    order = make_order([line("X1")], name="#CONFIRM-FAIL")

    with pytest.raises(RemoteFault):
        run(relay_order(order, erp))

    [sale] = mock_erp.sale_orders.values()
    assert sale["state"] == "draft"


def test_rejected_login_stops_before_any_lookup():
    erp = erp_client_for(make_settings(ODOO_PASSWORD="wrong"))

    with pytest.raises(RemoteFault):
        run(relay_order(make_order([line("X1")]), erp))

    assert [c[:2] for c in mock_erp.calls] == [("common", "login")]


# --- Stock relay ---

def test_stock_by_sku_sets_floored_quantity(erp, storefront):
    mock_storefront.add_variant("X1", 123)

    updated = run(relay_stock(StockNotification(sku="X1", new_qty=7.8), erp, storefront))

    assert updated is True
    assert mock_storefront.set_calls == [{"location_id": int(LOCATION_ID), "inventory_item_id": 123, "available": 7}]
    # SKU given directly: no ERP round trip
    assert mock_erp.calls == []


def test_stock_by_product_id_reads_and_trims_sku(erp, storefront):
    product_id = mock_erp.add_product("  X1  ")
    mock_storefront.add_variant("X1", 123)

    updated = run(relay_stock(StockNotification(product_id=product_id, quantity=12), erp, storefront))

    assert updated is True
    assert mock_storefront.graphql_queries == ['sku:"X1"']
    assert mock_storefront.levels[(int(LOCATION_ID), 123)] == 12


def test_stock_uses_available_quantity_when_quantity_missing(erp, storefront):
    product_id = mock_erp.add_product("X1")
    mock_storefront.add_variant("X1", 123)

    run(relay_stock(StockNotification(product_id=product_id, available_quantity=3.99), erp, storefront))

    assert mock_storefront.set_calls[0]["available"] == 3


def test_zero_quantity_is_propagated(erp, storefront):
    mock_storefront.add_variant("X1", 123)

    run(relay_stock(StockNotification(sku="X1", quantity=0, available_quantity=5), erp, storefront))

    assert mock_storefront.set_calls[0]["available"] == 0


def test_product_without_reference_is_skipped(erp, storefront):
    product_id = mock_erp.add_product(False, name="Service")

    updated = run(relay_stock(StockNotification(product_id=product_id, quantity=5), erp, storefront))

    assert updated is False
    assert mock_storefront.graphql_queries == []
    assert mock_storefront.set_calls == []


def test_unknown_storefront_sku_is_skipped(erp, storefront):
    mock_storefront.add_variant("X10", 10)

    updated = run(relay_stock(StockNotification(sku="X1", new_qty=4), erp, storefront))

    assert updated is False
    assert mock_storefront.set_calls == []


def test_missing_quantity_is_skipped(erp, storefront):
    mock_storefront.add_variant("X1", 123)

    assert run(relay_stock(StockNotification(sku="X1"), erp, storefront)) is False
    assert mock_storefront.set_calls == []


def test_stock_errors_are_swallowed(erp, storefront):
    assert run(relay_stock(StockNotification(sku="GRAPHQL-ERROR", new_qty=1), erp, storefront)) is False

    mock_storefront.add_variant("REJECTED", mock_storefront.REJECTED_INVENTORY_ITEM)
    assert run(relay_stock(StockNotification(sku="REJECTED", new_qty=1), erp, storefront)) is False


def test_stock_transport_failure_is_swallowed(erp):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    storefront = StorefrontClient(make_settings(), transport=httpx.MockTransport(handler))

    assert run(relay_stock(StockNotification(sku="X1", new_qty=1), erp, storefront)) is False


def test_stock_with_oauth_credentials(erp):
    settings = make_settings(SHOPIFY_ACCESS_TOKEN=None,
                             SHOPIFY_CLIENT_ID=mock_storefront.MOCK_CLIENT_ID,
                             SHOPIFY_CLIENT_SECRET=mock_storefront.MOCK_CLIENT_SECRET)
    mock_storefront.add_variant("X1", 123)

    updated = run(relay_stock(StockNotification(sku="X1", new_qty=2), erp, storefront_client_for(settings)))

    assert updated is True
    assert mock_storefront.set_calls[0]["available"] == 2


def test_missing_quantity_skips_erp_lookup(erp, storefront):
    product_id = mock_erp.add_product("X1")

    assert run(relay_stock(StockNotification(product_id=product_id), erp, storefront)) is False
    assert mock_erp.calls == []
    assert mock_storefront.graphql_queries == []


def test_guest_order_partner_named_after_email(erp):
    mock_erp.add_product("X1")
    order = make_order([line("X1")], email="guest@b.com", customer=None)

    response = run(relay_order(order, erp))

    partner_id = mock_erp.sale_orders[response.sale_id]["partner_id"]
    assert mock_erp.partners[partner_id]["name"] == "guest@b.com"
