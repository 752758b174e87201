"""Main application entry point for the offer catalog service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from offer_catalog_service.adapters.base_blob_store import BlobStore
from offer_catalog_service.adapters.cloudinary_blob_store import CloudinaryBlobStore
from offer_catalog_service.auth.token_validator import AuthTokenValidator
from offer_catalog_service.handlers.api_handler import create_app
from offer_catalog_service.models.offer_models import OfferCategory
from offer_catalog_service.observability import configure_logging, setup_observability
from offer_catalog_service.repositories.account_repositories import (
    PriceRangeRepository,
    UserRepository,
)
from offer_catalog_service.repositories.offer_repository import DynamoDBOfferRepository
from offer_catalog_service.services.catalog_service import CatalogService
from offer_catalog_service.services.price_range_service import PriceRangeService
from offer_catalog_service.services.user_service import UserService

logger = logging.getLogger(__name__)


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )

    logger.info(f"Using AWS DynamoDB in region {region}")
    # boto3 falls back to the default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=region)


def create_blob_store() -> BlobStore:
    """Create the image blob store from environment variables.

    Returns:
        Configured Cloudinary blob store

    Raises:
        ValueError: If Cloudinary credentials are missing
    """
    cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME")
    api_key = os.getenv("CLOUDINARY_API_KEY")
    api_secret = os.getenv("CLOUDINARY_API_SECRET")

    if not cloud_name or not api_key or not api_secret:
        raise ValueError(
            "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET must be set in environment"
        )

    logger.info(f"Cloudinary blob store configured for cloud {cloud_name}")
    return CloudinaryBlobStore(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret)


def create_catalog_services(
    dynamodb_resource: Any, table_name: str, blob_store: BlobStore
) -> dict[OfferCategory, CatalogService]:
    """Create one catalog service per offer category.

    Args:
        dynamodb_resource: Boto3 DynamoDB resource
        table_name: Name of the offers table shared by all categories
        blob_store: Image blob store

    Returns:
        Dictionary mapping categories to their catalog services
    """
    return {
        category: CatalogService(
            repository=DynamoDBOfferRepository(
                dynamodb_resource=dynamodb_resource, table_name=table_name, category=category
            ),
            blob_store=blob_store,
        )
        for category in OfferCategory
    }


def create_token_validator() -> AuthTokenValidator:
    """Create the auth token validator.

    Raises:
        ValueError: If JWT_KEY is not set
    """
    jwt_key = os.getenv("JWT_KEY")
    if not jwt_key:
        raise ValueError("JWT_KEY must be set in environment")
    return AuthTokenValidator(secret_key=jwt_key)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates the DynamoDB resource and repositories
    3. Creates the blob store and services
    4. Creates the FastAPI app
    5. Sets up observability when ENABLE_TRACING is true

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Initializing offer catalog service...")

    dynamodb_resource = get_dynamodb_resource()

    offers_table = os.getenv("DYNAMODB_OFFERS_TABLE", "offer-catalog-offers")
    settings_table = os.getenv("DYNAMODB_SETTINGS_TABLE", "offer-catalog-settings")
    users_table = os.getenv("DYNAMODB_USERS_TABLE", "offer-catalog-users")

    logger.info(
        f"Tables configured - offers: {offers_table}, settings: {settings_table}, users: {users_table}"
    )

    token_validator = create_token_validator()

    catalog_services = create_catalog_services(dynamodb_resource, offers_table, create_blob_store())
    price_range_service = PriceRangeService(
        price_range_repository=PriceRangeRepository(dynamodb_resource=dynamodb_resource, table_name=settings_table)
    )
    user_service = UserService(
        user_repository=UserRepository(dynamodb_resource=dynamodb_resource, table_name=users_table),
        token_validator=token_validator,
    )

    logger.info("Services initialized")

    cors_origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]

    app = create_app(
        catalog_services=catalog_services,
        price_range_service=price_range_service,
        user_service=user_service,
        token_validator=token_validator,
        cors_origins=cors_origins or None,
    )

    if os.getenv("ENABLE_TRACING", "false").lower() == "true":
        setup_observability(app)

    logger.info("Offer catalog service initialized successfully")

    return app


# Only build the real application outside of test runs, so importing this
# module during test collection needs no AWS or Cloudinary configuration
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "3000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
