from fastapi import Depends

from app.core.config import Settings, get_settings
from app.services.identity_provider import SupabaseAdminClient
from app.services.notification_relay import NotificationRelay


def get_identity_provider(settings: Settings = Depends(get_settings)) -> SupabaseAdminClient:
    return SupabaseAdminClient(settings)


def get_relay(settings: Settings = Depends(get_settings)) -> NotificationRelay:
    return NotificationRelay(settings)
