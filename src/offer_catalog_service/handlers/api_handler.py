"""FastAPI application for the offer catalog API."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Header, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from offer_catalog_service.auth.auth_dependencies import get_user_id_from_header
from offer_catalog_service.auth.token_validator import AuthTokenValidator
from offer_catalog_service.exceptions import CatalogError, InvalidInputError
from offer_catalog_service.models.account_models import (
    LoginRequest,
    PriceRange,
    PriceRangeUpdate,
    UserPublic,
    UserRegistration,
)
from offer_catalog_service.models.offer_models import (
    ImageUpload,
    Offer,
    OfferCategory,
    OfferCreate,
    OfferPage,
    OfferUpdate,
    ReorderRequest,
)
from offer_catalog_service.services.catalog_service import CatalogService
from offer_catalog_service.services.price_range_service import PriceRangeService
from offer_catalog_service.services.user_service import UserService

logger = logging.getLogger(__name__)

IMAGE_FIELD = "infoImage"
ALLOWED_IMAGE_TYPES = ("image/png", "image/jpg", "image/jpeg")
JSON_FORM_FIELDS = ("buyLink1", "buyLink2")

FormModel = TypeVar("FormModel", bound=BaseModel)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


async def parse_offer_form(request: Request, model: type[FormModel]) -> tuple[FormModel, ImageUpload | None]:
    """Parse a multipart offer form into validated fields and an optional image.

    Buy links arrive as JSON strings; every other text field is validated as
    sent. Only the ``infoImage`` file field is accepted.

    Args:
        request: Incoming request with a multipart (or urlencoded) body
        model: OfferCreate or OfferUpdate

    Returns:
        Tuple of (validated fields, image or None)

    Raises:
        InvalidInputError: On unknown file fields, unsupported image types,
            malformed JSON, or failed validation
    """
    form = await request.form()
    data: dict[str, Any] = {}
    image: ImageUpload | None = None

    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key != IMAGE_FIELD:
                raise InvalidInputError(f"Invalid file field: '{key}'. Only '{IMAGE_FIELD}' is allowed.")
            if value.content_type not in ALLOWED_IMAGE_TYPES:
                raise InvalidInputError("Only .png, .jpg and .jpeg formats are allowed.")
            image = ImageUpload(
                filename=value.filename or IMAGE_FIELD,
                content_type=value.content_type,
                data=await value.read(),
            )
        elif key in JSON_FORM_FIELDS:
            try:
                data[key] = json.loads(value)
            except json.JSONDecodeError as e:
                raise InvalidInputError(f"'{key}' must be a JSON object.") from e
        else:
            data[key] = value

    try:
        fields = model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidInputError(f"{location}: {first['msg']}" if location else first["msg"]) from e

    return fields, image


def create_app(
    catalog_services: dict[OfferCategory, CatalogService],
    price_range_service: PriceRangeService,
    user_service: UserService,
    token_validator: AuthTokenValidator,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        catalog_services: One catalog service per offer category
        price_range_service: Service for the price range record
        user_service: Service for registration and login
        token_validator: Validator for the x-auth-token header
        cors_origins: Allowed CORS origins (all origins when None)

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        for service in app.state.catalog_services.values():
            await service.wait_for_background_tasks()

    app = FastAPI(
        title="Offer Catalog Service API",
        description="Catalog of barrel, portable and tub offers with ordered listings",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-auth-token"],
    )

    app.state.catalog_services = catalog_services
    app.state.price_range_service = price_range_service
    app.state.user_service = user_service
    app.state.token_validator = token_validator

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status indicating service is running
        """
        return HealthResponse(status="healthy")

    def require_user(x_auth_token: Annotated[str | None, Header()] = None) -> str:
        """Dependency to validate the auth token."""
        return get_user_id_from_header(x_auth_token=x_auth_token, validator=app.state.token_validator)

    for category in catalog_services:
        app.include_router(_create_category_router(app, category, require_user))

    @app.get("/api/price-range", response_model=PriceRange, tags=["Price Range"])
    async def get_price_range(response: Response) -> PriceRange:
        """Get the price range, creating the default record on first access."""
        price_range, created = await app.state.price_range_service.get_price_range()
        if created:
            response.status_code = 201
        return price_range

    @app.put("/api/price-range", response_model=PriceRange, tags=["Price Range"])
    async def update_price_range(
        changes: PriceRangeUpdate,
        response: Response,
        _user_id: str = Depends(require_user),
    ) -> PriceRange:
        """Update the provided price range fields."""
        price_range, created = await app.state.price_range_service.update_price_range(changes)
        if created:
            response.status_code = 201
        return price_range

    @app.post("/api/users", response_model=UserPublic, tags=["Users"])
    async def register_user(registration: UserRegistration, response: Response) -> UserPublic:
        """Register a user and return the auth token in the x-auth-token header."""
        user, token = await app.state.user_service.register(registration)
        response.headers["x-auth-token"] = token
        return user

    @app.post("/api/auth", response_class=PlainTextResponse, tags=["Users"])
    async def login(credentials: LoginRequest) -> PlainTextResponse:
        """Exchange credentials for an auth token."""
        token = await app.state.user_service.login(credentials)
        return PlainTextResponse(token)

    return app


def _create_category_router(app: FastAPI, category: OfferCategory, require_user: Any) -> APIRouter:
    """Build the offer routes of one category."""
    router = APIRouter(prefix=f"/api/{category.value}", tags=[category.value.capitalize()])

    def service() -> CatalogService:
        catalog_service: CatalogService = app.state.catalog_services[category]
        return catalog_service

    @router.get("", response_model=OfferPage)
    async def list_offers(
        page_number: int = Query(..., alias="pageNumber", ge=1),
        page_size: int = Query(..., alias="pageSize", ge=1),
        disabled: bool = Query(False, description="Include disabled offers"),
    ) -> OfferPage:
        """List offers sorted by order, one page at a time."""
        return await service().list_offers(page_number, page_size, include_disabled=disabled)

    @router.get("/{offer_id}", response_model=Offer)
    async def get_offer(offer_id: str) -> Offer:
        """Get a single offer."""
        return await service().get_offer(offer_id)

    @router.post("", response_model=Offer)
    async def create_offer(request: Request, _user_id: str = Depends(require_user)) -> Offer:
        """Create an offer from a multipart form with an optional image."""
        fields, image = await parse_offer_form(request, OfferCreate)
        return await service().create_offer(fields, image)

    @router.put("/{offer_id}", response_model=Offer)
    async def update_offer(offer_id: str, request: Request, _user_id: str = Depends(require_user)) -> Offer:
        """Update an offer; every form field is optional."""
        fields, image = await parse_offer_form(request, OfferUpdate)
        return await service().update_offer(offer_id, fields, image)

    @router.delete("/{offer_id}", response_model=Offer)
    async def delete_offer(
        offer_id: str, background_tasks: BackgroundTasks, _user_id: str = Depends(require_user)
    ) -> Offer:
        """Delete an offer and return it as it was stored.

        The image deletion is awaited after the response is sent, still inside
        the same request, so it completes before a Lambda invocation returns.
        """
        deleted = await service().delete_offer(offer_id)
        background_tasks.add_task(service().wait_for_background_tasks)
        return deleted

    @router.post("/reorder", response_class=PlainTextResponse)
    async def reorder_offer(body: ReorderRequest, _user_id: str = Depends(require_user)) -> PlainTextResponse:
        """Move an offer to a new position."""
        await service().reorder_offer(body.id, body.order)
        return PlainTextResponse("Success")

    return router
