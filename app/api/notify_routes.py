from fastapi import APIRouter, BackgroundTasks, Depends, Request

from app.api.deps import get_relay
from app.core.config import Settings, get_settings
from app.middleware.rate_limit import API_LIMIT, limiter
from app.schemas.auth_scheme import SuccessResponse
from app.schemas.notify_scheme import EnquiryNotification, OrderNotification
from app.services.notification_relay import NotificationRelay
from app.services.notify_handlers import notify_enquiry, notify_order

router = APIRouter()


# Order placed in the wizard; relayed to the kitchen workflow
@router.post("/order", response_model=SuccessResponse)
@limiter.limit(API_LIMIT)
async def order(
    request: Request,
    body: OrderNotification,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    relay: NotificationRelay = Depends(get_relay),
):
    return notify_order(settings, relay, background_tasks, body)


# Contact form enquiry
@router.post("/enquiry", response_model=SuccessResponse)
@limiter.limit(API_LIMIT)
async def enquiry(
    request: Request,
    body: EnquiryNotification,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    relay: NotificationRelay = Depends(get_relay),
):
    return notify_enquiry(settings, relay, background_tasks, body)


@router.get("/health")
async def health():
    return {"status": "ok"}
