"""
main.py — FastAPI Entry Point for the Sync Service

This module provides the webhook interface between the storefront and the ERP.

Responsibilities:
    • Accept storefront order webhooks and relay them to the ERP (synchronously)
    • Accept ERP stock webhooks and propagate the quantity to the storefront
    • Verify webhook signatures before any ERP interaction
    • Provide system health information

Run with `sync-service`, or `uvicorn sync_service.main:create_app --factory`.
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from .clients import ErpClient, StorefrontClient
from .config import Settings, load_settings
from .exceptions import AuthenticationFailure, NoValidProductsError, SyncServiceError
from .logging_config import setup_logging, get_logger
from .models import OrderNotification, OrderRelayResponse, StockNotification
from .signature import SIGNATURE_HEADER, verify_webhook_signature
from .workflow import relay_order, relay_stock

log = get_logger(__name__)


def create_app(
        settings: Optional[Settings] = None,
        erp_client: Optional[ErpClient] = None,
        storefront_client: Optional[StorefrontClient] = None
) -> FastAPI:
    """
    Builds the FastAPI application.

    Settings are read from the environment exactly once, here, unless passed in.
    Clients that are not passed in are created at startup and closed at shutdown.

    Args:
        settings (Settings | None): Service configuration.
        erp_client (ErpClient | None): Pre-built ERP client (e.g. bound to the mock ERP).
        storefront_client (StorefrontClient | None): Pre-built storefront client.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
        log.info("Sync service starting...")
        erp = erp_client or ErpClient(settings)
        storefront = storefront_client or StorefrontClient(settings)
        app.state.erp = erp
        app.state.storefront = storefront
        try:
            yield
        finally:
            # only close what was created here
            if erp_client is None:
                await erp.aclose()
            if storefront_client is None:
                await storefront.aclose()
            log.info("Sync service stopped.")

    app = FastAPI(title="Storefront ERP Sync Service", lifespan=lifespan)
    app.state.settings = settings

    # Storefront → ERP
    @app.post("/shopify-webhook", response_model=OrderRelayResponse)
    async def order_webhook(request: Request):
        """
        Receives a storefront order and mirrors it into the ERP as a confirmed sales order.

        Returns:
            OrderRelayResponse: `{"success": true, "sale_id": <id>}`.

        Raises:
            HTTPException(401): If the signature is missing or invalid.
            HTTPException(400): If the payload is malformed or no line item matches an ERP product.
            HTTPException(500): If the ERP reports an error or cannot be reached.
        """
        raw_body = await request.body()

        try:
            authenticate_order_webhook(raw_body, request.headers.get(SIGNATURE_HEADER), settings)
        except AuthenticationFailure as e:
            log.warning(f"Order webhook rejected: {e}")
            raise HTTPException(status_code=401, detail="Invalid signature")

        try:
            order = OrderNotification.model_validate_json(raw_body)
        except ValidationError as e:
            log.warning(f"Order webhook with malformed payload: {e.error_count()} validation errors.")
            raise HTTPException(status_code=400, detail="Malformed order payload.")

        try:
            return await relay_order(order, request.app.state.erp)
        except NoValidProductsError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except SyncServiceError as e:
            log.error(f"[Order: {order.name}] Order relay failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        except Exception as e:
            log.critical(f"[Order: {order.name}] Unexpected error in order relay: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Internal server error while relaying order.")

    # ERP → Storefront
    @app.post("/odoo-stock-webhook", response_class=PlainTextResponse)
    async def stock_webhook(request: Request):
        """
        Receives an ERP stock change and sets the storefront quantity.

        Always answers 200 "OK": failures are logged, never reported back,
        so the ERP does not keep redelivering the notification.
        """
        raw_body = await request.body()
        try:
            notification = StockNotification.model_validate_json(raw_body)
        except ValidationError as e:
            log.error(f"Stock webhook with malformed payload ignored: {e.error_count()} validation errors.")
            return "OK"

        await relay_stock(notification, request.app.state.erp, request.app.state.storefront)
        return "OK"

    @app.get("/health")
    def health_check():
        """
        Simple health check endpoint for monitoring systems and container orchestrators.
        """
        return {"status": "ok"}

    return app


def authenticate_order_webhook(raw_body: bytes, signature: Optional[str], settings: Settings):
    """
    Raises AuthenticationFailure if the signature is missing or does not match the raw body.
    """
    if not verify_webhook_signature(raw_body, signature, settings.SHOPIFY_WEBHOOK_SECRET):
        raise AuthenticationFailure("signature header missing or not matching the request body")


def run():
    """Console entry point: loads the settings once and serves the app on the configured port."""
    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
