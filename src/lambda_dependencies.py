"""Shared dependency factory for the Lambda handler.

This module provides cached dependency initialization to optimize Lambda cold starts.
Dependencies are created once and reused across invocations within the same Lambda container.
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

# Module-level caches for Lambda container reuse
_dynamodb_resource: Any | None = None
_blob_store: BlobStore | None = None
_token_validator: AuthTokenValidator | None = None
_catalog_services: dict[OfferCategory, CatalogService] | None = None
_fastapi_app: FastAPI | None = None


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    global _dynamodb_resource

    if _dynamodb_resource is not None:
        return _dynamodb_resource

    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        _dynamodb_resource = boto3.resource("dynamodb", endpoint_url=endpoint_url, region_name=region)
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        _dynamodb_resource = boto3.resource("dynamodb", region_name=region)

    return _dynamodb_resource


def get_blob_store() -> BlobStore:
    """Create or retrieve cached Cloudinary blob store.

    Raises:
        ValueError: If Cloudinary credentials are missing
    """
    global _blob_store

    if _blob_store is not None:
        return _blob_store

    cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME")
    api_key = os.getenv("CLOUDINARY_API_KEY")
    api_secret = os.getenv("CLOUDINARY_API_SECRET")

    if not cloud_name or not api_key or not api_secret:
        raise ValueError(
            "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET must be set in environment"
        )

    _blob_store = CloudinaryBlobStore(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret)
    return _blob_store


def get_token_validator() -> AuthTokenValidator:
    """Create or retrieve cached auth token validator.

    Raises:
        ValueError: If JWT_KEY is not set
    """
    global _token_validator

    if _token_validator is None:
        jwt_key = os.getenv("JWT_KEY")
        if not jwt_key:
            raise ValueError("JWT_KEY must be set in environment")
        _token_validator = AuthTokenValidator(secret_key=jwt_key)

    return _token_validator


def get_catalog_services() -> dict[OfferCategory, CatalogService]:
    """Create or retrieve cached catalog services, one per category."""
    global _catalog_services

    if _catalog_services is not None:
        return _catalog_services

    dynamodb_resource = get_dynamodb_resource()
    offers_table = os.getenv("DYNAMODB_OFFERS_TABLE", "offer-catalog-offers")
    blob_store = get_blob_store()

    _catalog_services = {
        category: CatalogService(
            repository=DynamoDBOfferRepository(
                dynamodb_resource=dynamodb_resource, table_name=offers_table, category=category
            ),
            blob_store=blob_store,
        )
        for category in OfferCategory
    }

    logger.info("Catalog services initialized")
    return _catalog_services


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    dynamodb_resource = get_dynamodb_resource()
    token_validator = get_token_validator()

    settings_table = os.getenv("DYNAMODB_SETTINGS_TABLE", "offer-catalog-settings")
    users_table = os.getenv("DYNAMODB_USERS_TABLE", "offer-catalog-users")

    _fastapi_app = create_app(
        catalog_services=get_catalog_services(),
        price_range_service=PriceRangeService(
            price_range_repository=PriceRangeRepository(dynamodb_resource=dynamodb_resource, table_name=settings_table)
        ),
        user_service=UserService(
            user_repository=UserRepository(dynamodb_resource=dynamodb_resource, table_name=users_table),
            token_validator=token_validator,
        ),
        token_validator=token_validator,
    )

    if os.getenv("ENABLE_TRACING", "false").lower() == "true":
        setup_observability(_fastapi_app)

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Initialize Lambda environment with logging.

    Should be called once during Lambda cold start.
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Lambda environment initialized")
