"""Application configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

load_dotenv()

logger = logging.getLogger(__name__)


class Config(BaseModel):
    """Centralised app configuration backed by env vars."""

    # NocoDB
    nocodb_url: str = ""
    nocodb_token: str = ""
    nocodb_base_name: str = "product_content"
    parents_table: str = "product_content_parents"
    variants_table: str = "product_content_variants"
    webhooks_table: str = "shopify_raw_webhooks"
    products_table: str = "products"
    nocodb_page_size: int = 1000
    variant_page_size: int = 100
    request_timeout: int = 30

    # Shopify
    shopify_store_url: str = ""
    shopify_client_id: str = ""
    shopify_client_secret: str = ""
    shopify_access_token: str = ""
    shopify_api_version: str = "2025-10"
    shopify_proxy_webhook_url: str = ""  # n8n proxy; takes precedence over the Admin API

    # Flask
    flask_host: str = "127.0.0.1"
    flask_port: int = 5000
    flask_debug: bool = True
    flask_secret_key: str = "change-me-in-production"  # noqa: S105
    cors_origins: list[str] = ["http://localhost:5173"]
    frontend_dist: str = ""  # built dashboard bundle served for non-API paths

    @model_validator(mode="after")
    def _warn_empty_critical_fields(self) -> Config:
        """Log warnings when critical integration fields are empty."""
        if not self.nocodb_url:
            logger.warning("NOCODB_URL is not set, product data cannot be loaded")
        if not self.shopify_proxy_webhook_url and not self.shopify_store_url:
            logger.warning(
                "Neither SHOPIFY_PROXY_WEBHOOK_URL nor SHOPIFY_STORE_URL is set, "
                "Shopify pulls will fail"
            )
        return self

    @classmethod
    def from_env(cls) -> Config:
        """Build config from environment variables."""
        cors_raw = os.getenv("CORS_ORIGINS", "http://localhost:5173")
        cors_origins = [o.strip() for o in cors_raw.split(",") if o.strip()]

        return cls(
            nocodb_url=os.getenv("NOCODB_URL", "").rstrip("/"),
            nocodb_token=os.getenv("NOCODB_TOKEN", ""),
            nocodb_base_name=os.getenv("NOCODB_BASE_NAME", "product_content"),
            parents_table=os.getenv("NOCODB_PARENTS_TABLE", "product_content_parents"),
            variants_table=os.getenv("NOCODB_VARIANTS_TABLE", "product_content_variants"),
            webhooks_table=os.getenv("NOCODB_WEBHOOKS_TABLE", "shopify_raw_webhooks"),
            products_table=os.getenv("NOCODB_PRODUCTS_TABLE", "products"),
            nocodb_page_size=int(os.getenv("NOCODB_PAGE_SIZE", "1000")),
            variant_page_size=int(os.getenv("VARIANT_PAGE_SIZE", "100")),
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            shopify_store_url=os.getenv("SHOPIFY_STORE_URL", ""),
            shopify_client_id=os.getenv("SHOPIFY_CLIENT_ID", ""),
            shopify_client_secret=os.getenv("SHOPIFY_CLIENT_SECRET", ""),
            shopify_access_token=os.getenv("SHOPIFY_ACCESS_TOKEN", ""),
            shopify_api_version=os.getenv("SHOPIFY_API_VERSION", "2025-10"),
            shopify_proxy_webhook_url=os.getenv("SHOPIFY_PROXY_WEBHOOK_URL", ""),
            flask_host=os.getenv("FLASK_HOST", "127.0.0.1"),
            flask_port=int(os.getenv("FLASK_PORT", "5000")),
            flask_debug=os.getenv("FLASK_DEBUG", "true").lower() in ("1", "true", "yes"),
            flask_secret_key=os.getenv("FLASK_SECRET_KEY", "change-me-in-production"),
            cors_origins=cors_origins,
            frontend_dist=os.getenv("FRONTEND_DIST", ""),
        )


settings = Config.from_env()
