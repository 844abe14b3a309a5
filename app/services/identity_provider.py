"""
Identity provider adapter (Supabase GoTrue admin API)

Creates pre-confirmed users and mints magic-link tokens that the browser
redeems for a session. Every call is a single request: failures are raised
as ProviderError and never retried here.
"""
import enum
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import Settings
from app.services.errors import ProviderError
import logging

logger = logging.getLogger(__name__)

# Structured error codes GoTrue returns when the address is already registered
_ALREADY_EXISTS_CODES = {"email_exists", "user_already_exists"}


class UserProvisionResult(str, enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class RedeemableFragment:
    token_hash: str
    action_link: Optional[str] = None
    verification_type: str = "magiclink"


class SupabaseAdminClient:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.supabase_url
        self.service_key = settings.supabase_service_role_key
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, payload: dict) -> httpx.Response:
        if not self.base_url or not self.service_key:
            raise ProviderError("Identity provider is not configured")
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                return await client.post(path, json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            raise ProviderError(f"Identity provider unreachable: {exc}") from exc

    async def ensure_user(self, email: str) -> UserProvisionResult:
        """Create a confirmed user for the email, or report that one already exists."""
        resp = await self._post("/auth/v1/admin/users", {"email": email, "email_confirm": True})
        if resp.is_success:
            logger.info(f"✅ Identity created for: {email}")
            return UserProvisionResult.CREATED

        error_code = _error_code(resp)
        if resp.status_code in (409, 422) and error_code in _ALREADY_EXISTS_CODES:
            logger.info(f"✅ Identity already exists for: {email}")
            return UserProvisionResult.ALREADY_EXISTS

        raise ProviderError(f"User creation failed ({error_code or 'unknown'})", resp.status_code)

    async def mint_session(self, email: str, redirect_to: Optional[str] = None) -> RedeemableFragment:
        payload = {"type": "magiclink", "email": email}
        if redirect_to:
            payload["redirect_to"] = redirect_to
        resp = await self._post("/auth/v1/admin/generate_link", payload)
        if not resp.is_success:
            raise ProviderError(f"Link generation failed ({_error_code(resp) or 'unknown'})", resp.status_code)

        try:
            body = resp.json()
        except ValueError as exc:
            raise ProviderError("Link generation returned invalid JSON") from exc

        # Older responses nest the link under "properties"
        props = body.get("properties") or body
        token_hash = props.get("hashed_token")
        if not token_hash:
            raise ProviderError("Link generation response has no token")
        return RedeemableFragment(
            token_hash=token_hash,
            action_link=props.get("action_link"),
            verification_type=props.get("verification_type") or "magiclink",
        )


def _error_code(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    code = body.get("error_code")
    return code if isinstance(code, str) else None
