"""FastAPI dependencies for token authentication."""

from typing import Annotated

from fastapi import Header, HTTPException

from offer_catalog_service.auth.token_validator import AuthTokenValidator


def get_user_id_from_header(
    x_auth_token: Annotated[str | None, Header()] = None,
    validator: AuthTokenValidator | None = None,
) -> str:
    """FastAPI dependency to extract and validate the x-auth-token header.

    Args:
        x_auth_token: Token from the x-auth-token header (injected by FastAPI)
        validator: AuthTokenValidator instance

    Returns:
        str: The authenticated user id

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not x_auth_token:
        raise HTTPException(status_code=401, detail="Access denied. No token provided.")

    if validator is None:
        raise HTTPException(status_code=401, detail="Invalid token.")

    user_id = validator.validate(x_auth_token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token.")

    return user_id
