"""
mock_storefront.py — Mock Implementation of the Storefront Admin API (REST + GraphQL)

This module provides a simulated storefront for local development and the test suite.
It keeps product variants and inventory levels in memory.

Simulation Scenarios:
    • SKU search behaves like the real search: prefix matches are returned too
    • SKU containing "GRAPHQL-ERROR" → GraphQL `errors` response
    • Inventory item "999999" → HTTP 422 on inventory_levels/set
    • Wrong token or client credentials → HTTP 401

Endpoints:
    POST /admin/oauth/access_token                  — Client-credentials token grant.
    POST /admin/api/{version}/graphql.json          — productVariants lookup by SKU.
    POST /admin/api/{version}/inventory_levels/set.json — Sets available quantity.

Port:
    Default: 8002 (HTTP)
"""

import logging
import re
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Mock Storefront")

MOCK_ACCESS_TOKEN = "shpat_mock"
MOCK_CLIENT_ID = "mock-client"
MOCK_CLIENT_SECRET = "mock-secret"
REJECTED_INVENTORY_ITEM = 999999

variants: Dict[str, int] = {}
levels: Dict[tuple, int] = {}
set_calls: List[dict] = []
graphql_queries: List[str] = []

_SKU_QUERY = re.compile(r'sku:"((?:[^"\\]|\\.)*)"')


class TokenRequest(BaseModel):
    client_id: str
    client_secret: str
    grant_type: str


class GraphQLRequest(BaseModel):
    query: str
    variables: Dict[str, Any] = {}


class InventoryLevelSet(BaseModel):
    """
    Attributes:
        location_id (int): Location whose level is set.
        inventory_item_id (int): Inventory item whose level is set.
        available (int): New absolute available quantity.
    """
    location_id: int
    inventory_item_id: int
    available: int


def reset():
    """Clears all variants, levels and the call logs."""
    variants.clear()
    levels.clear()
    set_calls.clear()
    graphql_queries.clear()


def add_variant(sku: str, inventory_item_id: int):
    variants[sku] = inventory_item_id


def _check_token(token: Optional[str]):
    if token != MOCK_ACCESS_TOKEN:
        raise HTTPException(status_code=401, detail={"errors": "[API] Invalid API key or access token"})


@app.post("/admin/oauth/access_token")
def access_token(request: TokenRequest):
    if (request.client_id, request.client_secret) != (MOCK_CLIENT_ID, MOCK_CLIENT_SECRET):
        raise HTTPException(status_code=401, detail={"error": "invalid_client"})
    return {"access_token": MOCK_ACCESS_TOKEN, "scope": "write_inventory,read_products", "expires_in": 86399}


@app.post("/admin/api/{version}/graphql.json")
def graphql(version: str, request: GraphQLRequest,
            token: Optional[str] = Header(None, alias="X-Shopify-Access-Token")):
    """
    Answers the `productVariants(query: "sku:...")` lookup.

    Returns variants whose SKU starts with the searched value, so clients
    must filter for the exact match themselves.
    """
    _check_token(token)
    search = request.variables.get("query", "")
    graphql_queries.append(search)

    match = _SKU_QUERY.search(search)
    sku = re.sub(r"\\(.)", r"\1", match.group(1)) if match else ""
    logging.info(f"[SF] Variant lookup for SKU |{sku}|")

    if "GRAPHQL-ERROR" in sku:
        return {"errors": [{"message": "Simulated GraphQL error", "extensions": {"code": "INTERNAL_SERVER_ERROR"}}]}

    edges = [
        {"node": {"sku": variant_sku, "inventoryItem": {"id": f"gid://shopify/InventoryItem/{item_id}"}}}
        for variant_sku, item_id in sorted(variants.items())
        if sku and variant_sku.startswith(sku)
    ]
    return {"data": {"productVariants": {"edges": edges}}}


@app.post("/admin/api/{version}/inventory_levels/set.json")
def set_inventory_level(version: str, request: InventoryLevelSet,
                        token: Optional[str] = Header(None, alias="X-Shopify-Access-Token")):
    _check_token(token)
    set_calls.append(request.model_dump())

    if request.inventory_item_id == REJECTED_INVENTORY_ITEM:
        raise HTTPException(status_code=422, detail={"errors": ["Inventory item is not stocked at the location"]})

    levels[(request.location_id, request.inventory_item_id)] = request.available
    logging.info(f"[SF] Level set: item {request.inventory_item_id} @ {request.location_id} -> {request.available}")
    return {"inventory_level": {**request.model_dump(), "updated_at": "2024-01-01T00:00:00Z"}}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8002)
