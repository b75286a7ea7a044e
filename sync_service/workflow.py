"""
workflow.py — Core Synchronization Logic

This module contains the two one-shot workflows of the sync service.
Each call handles exactly one notification; steps run strictly in sequence.

Order Relay (storefront → ERP):
1. Authenticate against the ERP
2. Resolve or create the customer (partner) by email
3. Resolve every line item's product by SKU, dropping unmatched lines
4. Create the sales order and confirm it

Stock Relay (ERP → storefront):
1. Resolve the SKU (given directly, or read from the ERP product)
2. Resolve the storefront inventory item by exact SKU match
3. Set the available quantity (floored) at the configured location
"""

import logging
import math
from typing import Optional

from .clients import ErpClient, StorefrontClient
from .exceptions import NoValidProductsError, SyncServiceError
from .models import OrderNotification, OrderRelayResponse, StockNotification

log = logging.getLogger(__name__)


async def relay_order(order: OrderNotification, erp: ErpClient) -> OrderRelayResponse:
    """
    Mirrors a storefront order into the ERP as a confirmed sales order.

    Args:
        order (OrderNotification): The validated order payload.
        erp (ErpClient): ERP client.

    Returns:
        OrderRelayResponse: Contains the id of the created sales order.

    Raises:
        NoValidProductsError: If no line item matched an ERP product. No sales order is created.
        RemoteFault: If the ERP reports an error at any step.
        TransportFailure: If the ERP cannot be reached.

    Known gaps (not compensated):
        - An existing partner is reused verbatim; name and phone are never updated.
        - A partner created for an order that then fails is kept.
        - If confirmation fails, the created sales order stays in draft.
    """
    log_prefix = f"[Order: {order.name}]"
    log.info(f"{log_prefix} Relaying order to ERP ({len(order.line_items)} line items).")

    # --- 1. Authentication ---
    uid = await erp.login()

    # --- 2. Customer ---
    partner_id = await erp.search_partner_by_email(uid, order.email)
    if partner_id:
        log.info(f"{log_prefix} Reusing partner {partner_id} for {order.email}.")
    else:
        partner_id = await erp.create_partner(uid, order.customer.full_name or order.email, order.email,
                                             order.contact_phone)
        log.info(f"{log_prefix} Created partner {partner_id} for {order.email}.")

    # --- 3. Line items ---
    order_lines = []
    for item in order.line_items:
        if not item.sku:
            log.warning(f"{log_prefix} Skipping line '{item.title}': no SKU.")
            continue

        product_id = await erp.search_product_by_sku(uid, item.sku)
        if not product_id:
            log.warning(f"{log_prefix} Skipping line '{item.title}': SKU {item.sku} not found in ERP.")
            continue

        order_lines.append([0, 0, {
            "product_id": product_id,
            "product_uom_qty": item.quantity,
            "price_unit": float(item.price),
            "name": item.title
        }])

    if not order_lines:
        log.warning(f"{log_prefix} No line item matched an ERP product. Sales order not created.")
        raise NoValidProductsError(f"Order {order.name} has no line items matching ERP products")

    # --- 4. Sales order ---
    sale_id = await erp.create_sale_order(uid, partner_id, order.name, order_lines)
    log.info(f"{log_prefix} Sales order {sale_id} created with {len(order_lines)} lines.")

    try:
        await erp.confirm_sale_order(uid, sale_id)
    except SyncServiceError:
        log.critical(f"{log_prefix} Sales order {sale_id} created but NOT confirmed. Manual action required.")
        raise

    log.info(f"{log_prefix} Sales order {sale_id} confirmed.")
    return OrderRelayResponse(sale_id=sale_id)


async def resolve_sku(notification: StockNotification, erp: ErpClient) -> Optional[str]:
    """
    Returns the trimmed SKU of a stock notification.

    Reads the ERP product's internal reference when only a product id was sent.
    Returns None when no usable SKU exists.
    """
    if notification.sku and notification.sku.strip():
        return notification.sku.strip()

    if notification.product_id is None:
        return None

    uid = await erp.login()
    default_code = await erp.read_product_default_code(uid, notification.product_id)
    if default_code and default_code.strip():
        return default_code.strip()
    return None


async def relay_stock(notification: StockNotification, erp: ErpClient, storefront: StorefrontClient) -> bool:
    """
    Propagates an ERP stock level to the storefront inventory item with the same SKU.

    The quantity is floored to an integer and set as an absolute value (last write wins).
    This function never raises: every failure is logged and swallowed, so the
    webhook is always acknowledged and the ERP does not redeliver it.

    Args:
        notification (StockNotification): The stock-change payload.
        erp (ErpClient): ERP client, used only when the SKU has to be looked up.
        storefront (StorefrontClient): Storefront client.

    Returns:
        bool: True if the inventory level was set, False if the update was skipped or failed.
    """
    log_prefix = f"[Stock: {notification.reference}]"
    quantity = notification.resolved_quantity
    log.info(f"{log_prefix} Stock change received, quantity {quantity}.")

    try:
        if quantity is None:
            log.warning(f"{log_prefix} Notification carries no quantity. Stock update skipped.")
            return False

        # --- 1. SKU ---
        sku = await resolve_sku(notification, erp)
        if not sku:
            log.warning(f"{log_prefix} No internal reference (SKU) available. Stock update skipped.")
            return False

        # --- 2. Inventory item ---
        access_token = await storefront.get_access_token()
        inventory_item_id = await storefront.find_inventory_item_id(sku, access_token)
        if not inventory_item_id:
            log.warning(f"{log_prefix} SKU |{sku}| not found in storefront. Stock update skipped.")
            return False

        # --- 3. Update ---
        available = math.floor(quantity)
        await storefront.set_available(inventory_item_id, available, access_token)
        log.info(f"{log_prefix} Storefront synchronized: {sku} -> {available} "
                 f"(inventory item {inventory_item_id}).")
        return True

    except SyncServiceError as e:
        log.error(f"{log_prefix} Stock update failed: {e}")
    except Exception as e:
        log.critical(f"{log_prefix} Unexpected error in stock workflow: {e}", exc_info=True)
    return False
