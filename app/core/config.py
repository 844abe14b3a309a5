"""
Service configuration
Built once from the environment (.env loaded at startup) and injected into routes
"""
import ipaddress
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

# Fixed by the sign-in flow, not configurable
CODE_LENGTH = 4
CODE_TTL_SECONDS = 600

AUTH_RATE_LIMIT = "5/15 minutes"
API_RATE_LIMIT = "60/minute"


class ConfigError(RuntimeError):
    pass


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./sweet_moments.db"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    auth_webhook_url: Optional[str] = None
    order_webhook_url: Optional[str] = None
    enquiry_webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None
    webhook_secret_header: str = "X-Webhook-Secret"
    admin_emails: Tuple[str, ...] = field(default_factory=tuple)
    # Proxies allowed to report the client address in X-Forwarded-For (IPs or CIDRs)
    trusted_proxies: Tuple[str, ...] = field(default_factory=tuple)
    site_origin: str = "http://localhost:3000"
    resend_cooldown_seconds: int = 60
    http_timeout_seconds: float = 10.0
    auth_rate_limit: str = AUTH_RATE_LIMIT
    api_rate_limit: str = API_RATE_LIMIT

    def __post_init__(self):
        configured = [u for u in (self.auth_webhook_url, self.order_webhook_url, self.enquiry_webhook_url) if u]
        if configured and not self.webhook_secret:
            raise ConfigError("N8N_WEBHOOK_SECRET must be set when a webhook URL is configured")
        if self.resend_cooldown_seconds < 0:
            raise ConfigError("OTP_RESEND_COOLDOWN_SECONDS cannot be negative")
        for proxy in self.trusted_proxies:
            try:
                ipaddress.ip_network(proxy, strict=False)
            except ValueError as e:
                raise ConfigError(f"TRUSTED_PROXIES entry is not an address or network: {proxy!r}") from e

    def trusted_networks(self) -> tuple:
        return tuple(ipaddress.ip_network(proxy, strict=False) for proxy in self.trusted_proxies)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
            supabase_jwt_secret=os.getenv("SUPABASE_JWT_SECRET", ""),
            auth_webhook_url=os.getenv("N8N_AUTH_WEBHOOK_URL") or None,
            order_webhook_url=os.getenv("N8N_ORDER_WEBHOOK_URL") or None,
            enquiry_webhook_url=os.getenv("N8N_ENQUIRY_WEBHOOK_URL") or None,
            webhook_secret=os.getenv("N8N_WEBHOOK_SECRET") or None,
            webhook_secret_header=os.getenv("N8N_WEBHOOK_SECRET_HEADER", "X-Webhook-Secret"),
            admin_emails=_env_list("ADMIN_EMAILS"),
            trusted_proxies=_env_list("TRUSTED_PROXIES"),
            site_origin=os.getenv("SITE_ORIGIN", cls.site_origin),
            resend_cooldown_seconds=_env_number("OTP_RESEND_COOLDOWN_SECONDS", "60", int),
            http_timeout_seconds=_env_number("HTTP_TIMEOUT_SECONDS", "10", float),
        )

    def is_admin(self, email: str) -> bool:
        normalized = (email or "").strip().lower()
        return any(admin.strip().lower() == normalized for admin in self.admin_emails)


@lru_cache
def get_settings() -> Settings:
    # Local .env is optional; the hosting environment wins
    env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), "..", ".env")
    load_dotenv(env_path)
    return Settings.from_env()
