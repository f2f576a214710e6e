"""Interface layer errors and HTTP mapping."""

import logfire
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from idlink.adapter.error import AdapterError, ProviderError
from idlink.domain.error import (
    ConflictError,
    DecryptionError,
    DomainError,
    NotFoundError,
    NotLinkedError,
    PersistenceError,
    ProviderNotConfiguredError,
    ValidationError,
    WouldRemoveAllAuthMethodsError,
)


class InterfaceError(Exception):
    """Base interface error."""

    pass


class AuthenticationRequiredError(InterfaceError):
    """Request carries no acting account."""

    pass


def status_for(error: Exception) -> int:
    """HTTP status for a domain or adapter error."""
    if isinstance(error, (ValidationError, WouldRemoveAllAuthMethodsError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, (NotFoundError, NotLinkedError, ProviderNotConfiguredError)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, ProviderError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(error: Exception) -> dict:
    """Response body for an error.

    Storage and crypto failures get a generic message so nothing about
    stored tokens leaks to the client.
    """
    if isinstance(error, (DecryptionError, PersistenceError)):
        return {"detail": "Internal error"}
    if isinstance(error, ProviderError):
        return {"detail": "Identity provider request failed", "provider": error.provider}

    body: dict = {"detail": str(error)}
    if isinstance(error, ConflictError):
        body["conflict_type"] = error.kind.value
        body["provider"] = error.provider.value
    return body


async def handle_domain_error(request: Request, error: Exception) -> JSONResponse:
    code = status_for(error)
    if code >= 500:
        logfire.error(
            "Request failed",
            path=request.url.path,
            error_type=type(error).__name__,
            status_code=code,
        )
    return JSONResponse(status_code=code, content=error_body(error))


async def handle_authentication_required(
    request: Request, error: AuthenticationRequiredError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": str(error)}
    )


def register_error_handlers(app: FastAPI) -> None:
    """Map domain and adapter errors to HTTP responses."""
    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(AdapterError, handle_domain_error)
    app.add_exception_handler(
        AuthenticationRequiredError, handle_authentication_required
    )
