"""
Email one-time-code sign-in.

request_code stores a fresh code for the email and relays it to the
automation webhook; verify_code checks it, provisions the identity, mints a
magic-link token and only then consumes the code. Domain errors are turned
into a small fixed set of client messages here.
"""
from typing import Optional

import jwt
from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.services import otp_service
from app.services.errors import (
    AuthError,
    CodeExpired,
    InvalidInput,
    InvalidOrExpired,
    ProviderError,
    ResendTooSoon,
    UpstreamFailure,
)
from app.services.identity_provider import SupabaseAdminClient
from app.services.notification_relay import (
    NotificationRelay,
    auth_code_event,
    magic_link_event,
    welcome_event,
)
import logging

logger = logging.getLogger(__name__)

INVALID_EMAIL_MESSAGE = "A valid email is required"
MISSING_FIELDS_MESSAGE = "Email and code are required"
INVALID_CODE_MESSAGE = "Invalid or expired code"
RESEND_TOO_SOON_MESSAGE = "Please wait before requesting another code"
GENERIC_ERROR_MESSAGE = "Something went wrong, please try again"
EXPIRED_TOKEN_MESSAGE = "Token expired"
INVALID_TOKEN_MESSAGE = "Invalid token"

_ERROR_RESPONSES = (
    (InvalidOrExpired, 401, INVALID_CODE_MESSAGE),
    (InvalidInput, 400, INVALID_EMAIL_MESSAGE),
    (ResendTooSoon, 429, RESEND_TOO_SOON_MESSAGE),
    (UpstreamFailure, 500, GENERIC_ERROR_MESSAGE),
)


def to_http_exception(exc: AuthError) -> HTTPException:
    # InvalidInput carries the endpoint's own fixed message
    if isinstance(exc, InvalidInput) and str(exc):
        return HTTPException(status_code=400, detail=str(exc))
    for error_type, status_code, message in _ERROR_RESPONSES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=message)
    return HTTPException(status_code=500, detail=GENERIC_ERROR_MESSAGE)


def role_for(settings: Settings, email: str) -> str:
    return "admin" if settings.is_admin(email) else "customer"


async def request_code(
    db: Session,
    settings: Settings,
    relay: NotificationRelay,
    background_tasks: BackgroundTasks,
    email: str,
    mode: str = "login",
) -> dict:
    try:
        code = _issue_code(db, settings, email)
    except AuthError as e:
        raise to_http_exception(e) from e

    # Stored already; delivery is best effort and cannot fail the request
    relay.schedule(background_tasks, settings.auth_webhook_url, auth_code_event(email, code, mode))
    return {"success": True}


def _issue_code(db: Session, settings: Settings, email: str) -> str:
    try:
        existing = otp_service.get_pending_code(db, email)
        if otp_service.seconds_until_resend(existing, settings.resend_cooldown_seconds) > 0:
            logger.warning(f"⚠️  Code re-requested inside cooldown for: {email}")
            raise ResendTooSoon(email)

        code, expires_at = otp_service.generate_code()
        otp_service.upsert_pending_code(db, email, code, expires_at)
    except SQLAlchemyError as e:
        logger.error(f"❌ Could not store code for {email}: {e}")
        raise UpstreamFailure("code store unavailable") from e
    return code


async def verify_code(
    db: Session,
    settings: Settings,
    identity: SupabaseAdminClient,
    relay: NotificationRelay,
    background_tasks: BackgroundTasks,
    email: str,
    code: str,
) -> dict:
    try:
        fragment = await _verify_and_mint(db, settings, identity, email, code)
    except AuthError as e:
        raise to_http_exception(e) from e

    relay.schedule(background_tasks, settings.auth_webhook_url, welcome_event(email))
    return {
        "success": True,
        "sessionFragment": fragment.token_hash,
        "verificationType": fragment.verification_type,
        "role": role_for(settings, email),
    }


async def _verify_and_mint(db: Session, settings: Settings, identity: SupabaseAdminClient, email: str, code: str):
    try:
        pending = otp_service.find_pending_code(db, email, code)
    except SQLAlchemyError as e:
        logger.error(f"❌ Code lookup failed for {email}: {e}")
        raise UpstreamFailure("code store unavailable") from e

    if pending is None:
        logger.warning(f"⚠️  Invalid verification code for: {email}")
        raise InvalidOrExpired(email)
    if otp_service.is_expired(pending):
        # Left in place; the next request-code overwrites it
        logger.warning(f"⚠️  Expired verification code for: {email}")
        raise CodeExpired(email)

    try:
        await identity.ensure_user(email)
        fragment = await identity.mint_session(email, redirect_to=settings.site_origin)
    except ProviderError as e:
        logger.error(f"❌ Identity provider failed for {email}: {e}")
        raise UpstreamFailure("identity provider failed") from e

    # Consumed only after the session was minted so provider failures stay retryable
    try:
        otp_service.delete_pending_code(db, email)
    except SQLAlchemyError as e:
        logger.error(f"❌ Could not consume code for {email}: {e}")
        raise UpstreamFailure("code store unavailable") from e

    logger.info(f"✅ Code verified, session minted for: {email}")
    return fragment


async def request_magic_link(
    settings: Settings,
    identity: SupabaseAdminClient,
    relay: NotificationRelay,
    background_tasks: BackgroundTasks,
    email: str,
    origin: Optional[str] = None,
) -> dict:
    redirect_to = _safe_redirect(settings, origin)
    try:
        await identity.ensure_user(email)
        fragment = await identity.mint_session(email, redirect_to=redirect_to)
    except ProviderError as e:
        logger.error(f"❌ Magic link generation failed for {email}: {e}")
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_MESSAGE)

    if not fragment.action_link:
        logger.error(f"❌ Magic link response for {email} has no link")
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_MESSAGE)

    relay.schedule(background_tasks, settings.auth_webhook_url, magic_link_event(email, fragment.action_link))
    return {"success": True}


def _safe_redirect(settings: Settings, origin: Optional[str]) -> str:
    if origin and origin.rstrip("/") == settings.site_origin.rstrip("/"):
        return origin
    if origin:
        logger.warning(f"⚠️  Ignoring unknown redirect origin: {origin}")
    return settings.site_origin


def validate_session(settings: Settings, token: str) -> dict:
    """Decode a provider access token and resolve the caller's role."""
    if not token:
        raise HTTPException(status_code=401, detail=INVALID_TOKEN_MESSAGE)
    if not settings.supabase_jwt_secret:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail=GENERIC_ERROR_MESSAGE)
    try:
        payload = jwt.decode(token, settings.supabase_jwt_secret, algorithms=["HS256"], audience="authenticated")
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail=EXPIRED_TOKEN_MESSAGE)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail=INVALID_TOKEN_MESSAGE)

    email = payload.get("email")
    if not email:
        raise HTTPException(status_code=401, detail=INVALID_TOKEN_MESSAGE)
    return {"email": email, "role": role_for(settings, email)}
