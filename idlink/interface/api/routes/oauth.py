"""OAuth identity routes."""

from datetime import datetime
from uuid import UUID

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from idlink.application.usecase.audit import GetAuditLogsUseCase
from idlink.application.usecase.audit.get_audit_logs import (
    GetAuditLogsRequest,
    GetAuditLogsResponse,
)
from idlink.application.usecase.auth import (
    InitiateLoginUseCase,
    LinkProviderUseCase,
    LoginUseCase,
)
from idlink.application.usecase.auth.initiate_login import (
    InitiateLoginRequest,
    InitiateLoginResponse,
)
from idlink.application.usecase.auth.link_provider import (
    LinkProviderRequest,
    LinkProviderResponse,
)
from idlink.application.usecase.auth.login import LoginRequest, LoginResponse
from idlink.application.usecase.identity import (
    BulkUnlinkUseCase,
    CheckConflictUseCase,
    GetProviderStatusUseCase,
    ListProvidersUseCase,
    UnlinkProviderUseCase,
)
from idlink.application.usecase.identity.bulk_unlink import (
    BulkUnlinkRequest,
    BulkUnlinkResponse,
)
from idlink.application.usecase.identity.check_conflict import (
    CheckConflictRequest,
    CheckConflictResponse,
)
from idlink.application.usecase.identity.get_provider_status import (
    GetProviderStatusRequest,
)
from idlink.application.usecase.identity.list_providers import (
    ListProvidersRequest,
    ListProvidersResponse,
)
from idlink.application.usecase.identity.unlink_provider import (
    UnlinkProviderRequest,
    UnlinkProviderResponse,
)
from idlink.application.usecase.token import RefreshTokensUseCase, SweepTokensUseCase
from idlink.application.usecase.token.refresh_tokens import RefreshTokensRequest
from idlink.application.usecase.token.sweep_tokens import SweepTokensResponse
from idlink.domain.service import LinkedIdentitySummary
from idlink.domain.value import AuthProvider, SecurityEventType
from idlink.interface.error import AuthenticationRequiredError

router = APIRouter(prefix="/oauth", tags=["oauth"], route_class=DishkaRoute)


def _parse_account_id(value: str) -> str:
    try:
        return str(UUID(value))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Account-Id must be a UUID",
        )


def current_account_id(x_account_id: str | None = Header(default=None)) -> str:
    """Acting account, set by the session layer in front of this service."""
    if not x_account_id:
        raise AuthenticationRequiredError("Authentication required")
    return _parse_account_id(x_account_id)


def optional_account_id(x_account_id: str | None = Header(default=None)) -> str | None:
    if not x_account_id:
        return None
    return _parse_account_id(x_account_id)


class CallbackBody(BaseModel):
    """Code and state relayed from the provider redirect."""

    code: str = Field(min_length=1)
    state: str = Field(min_length=1)


class CheckConflictBody(BaseModel):
    """Identity to check."""

    provider: AuthProvider
    provider_user_id: str = Field(min_length=1)
    email: str | None = None


class BulkUnlinkBody(BaseModel):
    """Providers to unlink."""

    providers: list[AuthProvider] = Field(min_length=1)


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.get("/providers", response_model=ListProvidersResponse)
async def list_providers(
    use_case: FromDishka[ListProvidersUseCase],
    account_id: str = Depends(current_account_id),
) -> ListProvidersResponse:
    """List the acting account's linked providers and those still available."""
    return await use_case.execute(ListProvidersRequest(account_id=account_id))


@router.post("/check-conflicts", response_model=CheckConflictResponse)
async def check_conflicts(
    body: CheckConflictBody,
    use_case: FromDishka[CheckConflictUseCase],
    account_id: str | None = Depends(optional_account_id),
) -> CheckConflictResponse:
    """Check whether an identity could be linked, without linking it."""
    return await use_case.execute(
        CheckConflictRequest(
            provider=body.provider,
            provider_user_id=body.provider_user_id,
            email=body.email,
            account_id=account_id,
        )
    )


@router.get("/audit-logs", response_model=GetAuditLogsResponse)
async def get_audit_logs(
    use_case: FromDishka[GetAuditLogsUseCase],
    account_id: str = Depends(current_account_id),
    provider: AuthProvider | None = None,
    event_type: SecurityEventType | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> GetAuditLogsResponse:
    """Page through the acting account's security events, newest first."""
    return await use_case.execute(
        GetAuditLogsRequest(
            account_id=account_id,
            provider=provider,
            event_type=event_type,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )
    )


@router.post("/bulk-unlink", response_model=BulkUnlinkResponse)
async def bulk_unlink(
    body: BulkUnlinkBody,
    request: Request,
    use_case: FromDishka[BulkUnlinkUseCase],
    account_id: str = Depends(current_account_id),
) -> BulkUnlinkResponse:
    """Unlink several providers; each succeeds or fails on its own."""
    return await use_case.execute(
        BulkUnlinkRequest(
            account_id=account_id,
            providers=body.providers,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    )


@router.post("/cleanup-tokens", response_model=SweepTokensResponse)
async def cleanup_tokens(
    use_case: FromDishka[SweepTokensUseCase],
) -> SweepTokensResponse:
    """Run one token sweep now.

    Refreshes expired provider tokens and purges stale state records.
    """
    return await use_case.execute()


@router.get("/{provider}/authorize", response_model=InitiateLoginResponse)
async def authorize(
    provider: AuthProvider,
    use_case: FromDishka[InitiateLoginUseCase],
    account_id: str | None = Depends(optional_account_id),
) -> InitiateLoginResponse:
    """Start an authorization code flow.

    With X-Account-Id set, the state is bound to that account and must be
    completed through the link route.

    Example response:
        {
            "provider": "google",
            "authorization_url": "https://accounts.google.com/o/oauth2/v2/auth?...",
            "state": "1760659200000.9f2c...e1.3b7a91c0"
        }
    """
    return await use_case.execute(
        InitiateLoginRequest(provider=provider, account_id=account_id)
    )


@router.post("/{provider}/callback", response_model=LoginResponse)
async def callback(
    provider: AuthProvider,
    body: CallbackBody,
    request: Request,
    use_case: FromDishka[LoginUseCase],
) -> LoginResponse:
    """Complete sign-in: exchange the code and resolve the account."""
    return await use_case.execute(
        LoginRequest(
            provider=provider,
            code=body.code,
            state=body.state,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    )


@router.post("/{provider}/link", response_model=LinkProviderResponse)
async def link(
    provider: AuthProvider,
    body: CallbackBody,
    request: Request,
    use_case: FromDishka[LinkProviderUseCase],
    account_id: str = Depends(current_account_id),
) -> LinkProviderResponse:
    """Complete a flow started by a signed-in account and link the identity."""
    return await use_case.execute(
        LinkProviderRequest(
            account_id=account_id,
            provider=provider,
            code=body.code,
            state=body.state,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    )


@router.get("/{provider}/status", response_model=LinkedIdentitySummary)
async def provider_status(
    provider: AuthProvider,
    use_case: FromDishka[GetProviderStatusUseCase],
    account_id: str = Depends(current_account_id),
) -> LinkedIdentitySummary:
    """Token freshness of one linked provider."""
    return await use_case.execute(
        GetProviderStatusRequest(account_id=account_id, provider=provider)
    )


@router.delete("/{provider}/unlink", response_model=UnlinkProviderResponse)
async def unlink(
    provider: AuthProvider,
    request: Request,
    use_case: FromDishka[UnlinkProviderUseCase],
    account_id: str = Depends(current_account_id),
) -> UnlinkProviderResponse:
    """Unlink a provider unless it is the account's last sign-in method."""
    return await use_case.execute(
        UnlinkProviderRequest(
            account_id=account_id,
            provider=provider,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    )


@router.post("/{provider}/refresh", response_model=LinkedIdentitySummary)
async def refresh(
    provider: AuthProvider,
    use_case: FromDishka[RefreshTokensUseCase],
    account_id: str = Depends(current_account_id),
) -> LinkedIdentitySummary:
    """Refresh a linked provider's tokens now."""
    return await use_case.execute(
        RefreshTokensRequest(account_id=account_id, provider=provider)
    )
