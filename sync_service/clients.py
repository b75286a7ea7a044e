"""
This module provides communication clients for the external systems used by the sync service:
- ERP (Odoo JSON-RPC)
- Storefront (Shopify Admin REST and GraphQL API)
Each class encapsulates its protocol logic and error handling. Transport problems are
raised as `TransportFailure`, errors reported by the remote side as `RemoteFault`.
"""

import json
import logging
import uuid
from typing import Any, List, Optional

import httpx

from .config import Settings
from .exceptions import RemoteFault, TransportFailure

log = logging.getLogger(__name__)

INVENTORY_ITEM_BY_SKU_QUERY = """
query inventoryItemBySku($query: String!) {
  productVariants(first: 10, query: $query) {
    edges {
      node {
        sku
        inventoryItem {
          id
        }
      }
    }
  }
}
"""


def legacy_resource_id(gid: str) -> str:
    """
    Returns the trailing segment of a global resource identifier.

    "gid://shopify/InventoryItem/4711" -> "4711"
    """
    return gid.rstrip("/").rsplit("/", 1)[-1]


def _numeric(value):
    text = str(value)
    return int(text) if text.isdigit() else value


def _single_id(result) -> int:
    # create() answers a bare id, or a one-element list on newer ERP versions
    if isinstance(result, list):
        return result[0]
    return result


# --- ERP Client (JSON-RPC) ---
class ErpClient:
    """
    Client for the ERP JSON-RPC endpoint.
    Wraps the generic call envelope and the model methods used by the workflows.
    """
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initializes the HTTP client. The httpx default timeout applies.

        Args:
            settings (Settings): Service configuration (URL, database, credentials).
            transport (httpx.AsyncBaseTransport | None): Alternative transport, e.g. for the mock ERP.
        """
        self.settings = settings
        self.client = httpx.AsyncClient(transport=transport)

    async def aclose(self):
        """Closes the HTTP client session."""
        await self.client.aclose()

    async def call(self, service: str, method: str, args: list) -> Any:
        """
        Sends a single JSON-RPC `call` request.

        Args:
            service (str): RPC service, e.g. "common" or "object".
            method (str): Method of that service, e.g. "login" or "execute_kw".
            args (list): Positional arguments.
        Returns:
            Any: The `result` field of the response.
        Raises:
            RemoteFault: If the response carries an `error` object.
            TransportFailure: If the request fails or the response is not valid JSON-RPC.
        """
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"service": service, "method": method, "args": args},
            "id": uuid.uuid4().hex  # correlation only
        }
        try:
            response = await self.client.post(self.settings.ODOO_URL, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            log.error(f"[ERP] Transport error on {service}.{method}: {e}")
            raise TransportFailure(f"ERP call {service}.{method} failed: {e}") from e
        except ValueError as e:
            log.error(f"[ERP] Invalid JSON response on {service}.{method}: {e}")
            raise TransportFailure(f"ERP call {service}.{method} returned invalid JSON") from e

        if not isinstance(data, dict):
            log.error(f"[ERP] Response to {service}.{method} is not a JSON-RPC object: {data!r}")
            raise TransportFailure(f"ERP call {service}.{method} returned no JSON-RPC object")

        if data.get("error"):
            fault = json.dumps(data["error"])
            log.error(f"[ERP] Fault on {service}.{method}: {fault}")
            raise RemoteFault(fault, fault=data["error"])
        return data.get("result")

    async def login(self) -> int:
        """
        Authenticates against the ERP database.

        Returns:
            int: The user id used by all subsequent `execute_kw` calls.
        Raises:
            RemoteFault: If the ERP rejects the credentials.
        """
        s = self.settings
        uid = await self.call("common", "login", [s.ODOO_DB, s.ODOO_USER, s.ODOO_PASSWORD])
        if not uid:
            raise RemoteFault(f"ERP login rejected for user '{s.ODOO_USER}' on database '{s.ODOO_DB}'")
        return uid

    async def execute_kw(self, uid: int, model: str, method: str, args: list, kwargs: Optional[dict] = None):
        s = self.settings
        rpc_args = [s.ODOO_DB, uid, s.ODOO_PASSWORD, model, method, args]
        if kwargs is not None:
            rpc_args.append(kwargs)
        return await self.call("object", "execute_kw", rpc_args)

    async def search_partner_by_email(self, uid: int, email: str) -> Optional[int]:
        partners = await self.execute_kw(uid, "res.partner", "search_read",
                                         [[["email", "=", email]]], {"limit": 1})
        return partners[0]["id"] if partners else None

    async def create_partner(self, uid: int, name: str, email: str, phone: Optional[str] = None) -> int:
        values = {"name": name, "email": email}
        if phone:
            values["phone"] = phone
        return _single_id(await self.execute_kw(uid, "res.partner", "create", [values]))

    async def search_product_by_sku(self, uid: int, sku: str) -> Optional[int]:
        products = await self.execute_kw(uid, "product.product", "search_read",
                                         [[["default_code", "=", sku]]], {"limit": 1})
        return products[0]["id"] if products else None

    async def read_product_default_code(self, uid: int, product_id: int) -> Optional[str]:
        """
        Reads the internal reference (SKU) of a product.

        Returns:
            str | None: The reference, or None if the product is unknown or has none
            (the ERP reports unset fields as `false`).
        """
        records = await self.execute_kw(uid, "product.product", "read",
                                        [[product_id]], {"fields": ["default_code"]})
        if not records:
            return None
        default_code = records[0].get("default_code")
        return default_code if isinstance(default_code, str) else None

    async def create_sale_order(self, uid: int, partner_id: int, client_order_ref: str, order_lines: List[list]) -> int:
        values = {"partner_id": partner_id, "client_order_ref": client_order_ref, "order_line": order_lines}
        return _single_id(await self.execute_kw(uid, "sale.order", "create", [values]))

    async def confirm_sale_order(self, uid: int, sale_id: int):
        return await self.execute_kw(uid, "sale.order", "action_confirm", [[sale_id]])


# --- Storefront Client (REST + GraphQL) ---
class StorefrontClient:
    """
    Client for the storefront Admin API.
    Resolves inventory items by SKU and sets available quantities at the configured location.
    """
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initializes the HTTP client against the versioned Admin API base URL.
        """
        self.settings = settings
        self.client = httpx.AsyncClient(base_url=settings.shopify_admin_url, transport=transport)

    async def aclose(self):
        """Closes the HTTP client session."""
        await self.client.aclose()

    async def get_access_token(self) -> str:
        """
        Returns the static access token, or fetches one via the OAuth client-credentials grant.

        Raises:
            RemoteFault: If the token endpoint rejects the client credentials.
            TransportFailure: If the token endpoint cannot be reached.
        """
        s = self.settings
        if s.uses_static_token:
            return s.SHOPIFY_ACCESS_TOKEN

        payload = {
            "client_id": s.SHOPIFY_CLIENT_ID,
            "client_secret": s.SHOPIFY_CLIENT_SECRET,
            "grant_type": "client_credentials"
        }
        data = await self._send("POST", f"https://{s.SHOPIFY_STORE_URL}/admin/oauth/access_token",
                                payload=payload)
        token = data.get("access_token")
        if not token:
            raise RemoteFault("Storefront token endpoint returned no access_token", fault=data)
        return token

    async def find_inventory_item_id(self, sku: str, access_token: str) -> Optional[str]:
        """
        Looks up the inventory item of the variant whose SKU equals `sku` exactly.

        Args:
            sku (str): The SKU, already trimmed.
            access_token (str): Admin API access token.
        Returns:
            str | None: The numeric inventory item id, or None if no variant matches.
        Raises:
            RemoteFault: If the GraphQL response carries errors.
        """
        escaped = sku.replace("\\", "\\\\").replace('"', '\\"')
        payload = {
            "query": INVENTORY_ITEM_BY_SKU_QUERY,
            "variables": {"query": f'sku:"{escaped}"'}
        }
        data = await self._send("POST", "/graphql.json", access_token=access_token, payload=payload)
        if data.get("errors"):
            raise RemoteFault(f"Storefront GraphQL errors: {json.dumps(data['errors'])}", fault=data["errors"])

        edges = (((data.get("data") or {}).get("productVariants") or {}).get("edges")) or []
        for edge in edges:
            node = edge.get("node") or {}
            # the search is token based, so "ABC" also returns "ABC-2"
            if node.get("sku") == sku and node.get("inventoryItem"):
                return legacy_resource_id(node["inventoryItem"]["id"])
        return None

    async def set_available(self, inventory_item_id: str, available: int, access_token: str) -> dict:
        """
        Sets the absolute available quantity of an inventory item at the configured location.

        Raises:
            RemoteFault: If the storefront rejects the update.
        """
        payload = {
            "location_id": _numeric(self.settings.SHOPIFY_LOCATION_ID),
            "inventory_item_id": _numeric(inventory_item_id),
            "available": int(available)
        }
        return await self._send("POST", "/inventory_levels/set.json", access_token=access_token, payload=payload)

    async def _send(self, method: str, url: str, payload: dict, access_token: Optional[str] = None) -> dict:
        headers = {"X-Shopify-Access-Token": access_token} if access_token else {}
        try:
            response = await self.client.request(method, url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            log.error(f"[Storefront] Transport error on {method} {url}: {e}")
            raise TransportFailure(f"Storefront request {method} {url} failed: {e}") from e

        if response.is_error:
            log.error(f"[Storefront] HTTP {response.status_code} on {method} {url}: {response.text}")
            raise RemoteFault(f"Storefront request {method} {url} returned HTTP {response.status_code}: "
                              f"{response.text}")
        try:
            data = response.json()
        except ValueError as e:
            raise TransportFailure(f"Storefront request {method} {url} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise TransportFailure(f"Storefront request {method} {url} returned no JSON object")
        return data
