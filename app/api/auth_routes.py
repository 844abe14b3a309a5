from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.api.deps import get_identity_provider, get_relay
from app.core.config import Settings, get_settings
from app.db.session import get_db
from app.middleware.rate_limit import API_LIMIT, AUTH_LIMIT, limiter
from app.schemas.auth_scheme import (
    MagicLinkRequest,
    RequestCodeRequest,
    SuccessResponse,
    SessionRead,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from app.services.auth_handlers import (
    request_code as svc_request_code,
    verify_code as svc_verify_code,
    request_magic_link as svc_request_magic_link,
    validate_session as svc_validate_session,
)
from app.services.identity_provider import SupabaseAdminClient
from app.services.notification_relay import NotificationRelay

router = APIRouter()
security = HTTPBearer(auto_error=False)


# Send a one-time code to the email (through the automation webhook)
@router.post("/request-code", response_model=SuccessResponse)
@limiter.limit(AUTH_LIMIT)
async def request_code(
    request: Request,
    body: RequestCodeRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    relay: NotificationRelay = Depends(get_relay),
):
    return await svc_request_code(db, settings, relay, background_tasks, body.email, body.mode)


# Exchange email + code for a redeemable magic-link token
@router.post("/verify-code", response_model=VerifyCodeResponse, response_model_by_alias=True)
@limiter.limit(AUTH_LIMIT)
async def verify_code(
    request: Request,
    body: VerifyCodeRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: SupabaseAdminClient = Depends(get_identity_provider),
    relay: NotificationRelay = Depends(get_relay),
):
    return await svc_verify_code(db, settings, identity, relay, background_tasks, body.email, body.code)


# Magic link sign-in (link delivered through the automation webhook)
@router.post("/request-link", response_model=SuccessResponse)
@limiter.limit(AUTH_LIMIT)
async def request_link(
    request: Request,
    body: MagicLinkRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    identity: SupabaseAdminClient = Depends(get_identity_provider),
    relay: NotificationRelay = Depends(get_relay),
):
    return await svc_request_magic_link(settings, identity, relay, background_tasks, body.email, body.origin)


@router.get("/session", response_model=SessionRead)
@limiter.limit(API_LIMIT)
async def session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
):
    return svc_validate_session(settings, credentials.credentials if credentials else "")
