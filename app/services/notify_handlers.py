from fastapi import BackgroundTasks

from app.core.config import Settings
from app.schemas.notify_scheme import EnquiryNotification, OrderNotification
from app.services.notification_relay import NotificationRelay, enquiry_event, order_event


def notify_order(settings: Settings, relay: NotificationRelay, background_tasks: BackgroundTasks, order: OrderNotification) -> dict:
    relay.schedule(background_tasks, settings.order_webhook_url, order_event(order.model_dump(mode="json")))
    return {"success": True}


def notify_enquiry(settings: Settings, relay: NotificationRelay, background_tasks: BackgroundTasks, enquiry: EnquiryNotification) -> dict:
    relay.schedule(background_tasks, settings.enquiry_webhook_url, enquiry_event(enquiry.model_dump(mode="json")))
    return {"success": True}
