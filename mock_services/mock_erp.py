"""
mock_erp.py — Mock Implementation of the ERP (Odoo JSON-RPC)

This module provides a simulated ERP for local development and the test suite.
It exposes a FastAPI application that mimics the JSON-RPC endpoint and keeps
partners, products and sales orders in memory.

Simulation Scenarios:
    • Login with a wrong password → `false` (as the real ERP answers)
    • SKU containing "FAULT" → server fault on the product search
    • Order reference containing "CONFIRM-FAIL" → server fault on confirmation
    • Unknown model or method → server fault

Endpoints:
    POST /jsonrpc — Handles `common.login` and `object.execute_kw`.

Port:
    Default: 8069 (HTTP)
"""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI
from pydantic import BaseModel

app = FastAPI(title="Mock ERP")

MOCK_DB = "mock"
MOCK_USER = "admin"
MOCK_PASSWORD = "admin"
MOCK_UID = 2

partners: Dict[int, dict] = {}
products: Dict[int, dict] = {}
sale_orders: Dict[int, dict] = {}
calls: List[tuple] = []
_next_id = {"value": 100}


class RpcRequest(BaseModel):
    """
    A JSON-RPC request envelope.

    Attributes:
        jsonrpc (str): Protocol version, "2.0".
        method (str): Always "call".
        params (dict): `service`, `method` and `args` of the call.
        id (Any): Correlation id, echoed back.
    """
    jsonrpc: str = "2.0"
    method: str = "call"
    params: Dict[str, Any]
    id: Any = None


class MockFault(Exception):
    pass


def reset():
    """Clears all records and the call log."""
    partners.clear()
    products.clear()
    sale_orders.clear()
    calls.clear()
    _next_id["value"] = 100


def _new_id() -> int:
    _next_id["value"] += 1
    return _next_id["value"]


def add_partner(name: str, email: str, phone=None) -> int:
    partner_id = _new_id()
    partners[partner_id] = {"id": partner_id, "name": name, "email": email, "phone": phone or False}
    return partner_id


def add_product(default_code, name: str = "") -> int:
    product_id = _new_id()
    products[product_id] = {"id": product_id, "name": name or str(default_code), "default_code": default_code}
    return product_id


def calls_to(model: str, method: str) -> List[tuple]:
    return [c for c in calls if c[0] == model and c[1] == method]


def _match(record: dict, domain: list) -> bool:
    return all(record.get(field) == value for field, _op, value in domain)


def _search_read(table: Dict[int, dict], domain: list, kwargs: dict) -> list:
    found = [dict(r) for r in table.values() if _match(r, domain)]
    limit = kwargs.get("limit")
    return found[:limit] if limit else found


def _execute_kw(model: str, method: str, args: list, kwargs: dict):
    calls.append((model, method, args, kwargs))

    if model == "res.partner" and method == "search_read":
        return _search_read(partners, args[0], kwargs)
    if model == "res.partner" and method == "create":
        values = args[0]
        partner_id = _new_id()
        partners[partner_id] = {"id": partner_id, "phone": False, **values}
        return partner_id

    if model == "product.product" and method == "search_read":
        for _field, _op, value in args[0]:
            if "FAULT" in str(value):
                raise MockFault(f"Simulated fault while searching {value}")
        return _search_read(products, args[0], kwargs)
    if model == "product.product" and method == "read":
        fields = kwargs.get("fields") or ["default_code", "name"]
        return [{"id": pid, **{f: products[pid].get(f, False) for f in fields}}
                for pid in args[0] if pid in products]

    if model == "sale.order" and method == "create":
        values = args[0]
        sale_id = _new_id()
        sale_orders[sale_id] = {"id": sale_id, "state": "draft", **values}
        return sale_id
    if model == "sale.order" and method == "action_confirm":
        for sale_id in args[0]:
            order = sale_orders[sale_id]
            if "CONFIRM-FAIL" in str(order.get("client_order_ref")):
                raise MockFault(f"Simulated fault while confirming {sale_id}")
            order["state"] = "sale"
        return True

    raise MockFault(f"Object {model} has no method {method}")


def _fault(message: str) -> dict:
    return {"code": 200, "message": "Odoo Server Error",
            "data": {"name": "odoo.exceptions.UserError", "message": message}}


@app.post("/jsonrpc")
def jsonrpc(request: RpcRequest):
    """
    Dispatches a JSON-RPC call.

    Returns:
        dict: `{"jsonrpc", "id", "result"}` on success, `{"jsonrpc", "id", "error"}` on a fault.
    """
    service = request.params.get("service")
    method = request.params.get("method")
    args = request.params.get("args") or []
    logging.info(f"[ERP] {service}.{method}")

    try:
        if service == "common" and method == "login":
            db, user, password = args
            calls.append(("common", "login", [db, user], {}))
            uid = MOCK_UID if (db, user, password) == (MOCK_DB, MOCK_USER, MOCK_PASSWORD) else False
            return {"jsonrpc": "2.0", "id": request.id, "result": uid}

        if service == "object" and method == "execute_kw":
            db, uid, password, model, model_method, model_args = args[:6]
            kwargs = args[6] if len(args) > 6 else {}
            if uid != MOCK_UID or password != MOCK_PASSWORD:
                raise MockFault("Access Denied")
            result = _execute_kw(model, model_method, model_args, kwargs)
            return {"jsonrpc": "2.0", "id": request.id, "result": result}

        raise MockFault(f"Unknown service method {service}.{method}")
    except MockFault as e:
        logging.warning(f"[ERP] Fault: {e}")
        return {"jsonrpc": "2.0", "id": request.id, "error": _fault(str(e))}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8069)
