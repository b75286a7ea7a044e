from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ODOO_URL: str
    ODOO_DB: str
    ODOO_USER: str
    ODOO_PASSWORD: str
    SHOPIFY_STORE_URL: str
    SHOPIFY_API_VERSION: str = "2024-01"
    SHOPIFY_ACCESS_TOKEN: Optional[str] = None
    SHOPIFY_CLIENT_ID: Optional[str] = None
    SHOPIFY_CLIENT_SECRET: Optional[str] = None
    SHOPIFY_LOCATION_ID: str
    SHOPIFY_WEBHOOK_SECRET: str
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"
        frozen = True

    @property
    def shopify_admin_url(self) -> str:
        return f"https://{self.SHOPIFY_STORE_URL}/admin/api/{self.SHOPIFY_API_VERSION}"

    @property
    def uses_static_token(self) -> bool:
        return bool(self.SHOPIFY_ACCESS_TOKEN)

    @model_validator(mode="after")
    def validate_credentials(self):
        if not self.SHOPIFY_WEBHOOK_SECRET:
            raise ValueError("SHOPIFY_WEBHOOK_SECRET must not be empty; order webhooks are always verified.")

        if self.uses_static_token:
            return self

        if not (self.SHOPIFY_CLIENT_ID and self.SHOPIFY_CLIENT_SECRET):
            raise ValueError(
                "Either SHOPIFY_ACCESS_TOKEN or both SHOPIFY_CLIENT_ID and SHOPIFY_CLIENT_SECRET must be set."
            )

        return self


def load_settings() -> Settings:
    """Reads the settings from the environment (and `.env`). Called once at startup."""
    return Settings()
