"""
Templated email notifications (SendGrid dynamic templates over HTTP).

Delivery is best-effort: callers persist first and hand the notification to
``dispatch_appointment_confirmation`` as a background task, so a provider
outage never turns a successful write into a failed request.
"""
from datetime import date
from typing import Optional

import httpx
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import settings
from app.core.logger import get_logger
from app.core.utils import friendly_date

logger = get_logger("notifications")

class NotificationRejected(Exception):
    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        super().__init__(f"Notification rejected with status {status_code}: {body[:200]}")

class NotificationService:
    def __init__(
        self,
        api_key: Optional[str] = settings.SENDGRID_API_KEY,
        api_url: str = settings.SENDGRID_API_URL,
        sender: str = settings.SENDGRID_VERIFIED_SENDER,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.sender = sender
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @retry(
        retry=retry_if_exception_type((httpx.HTTPError, NotificationRejected)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
    )
    async def _post(self, payload: dict) -> None:
        async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
            response = await client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        if response.status_code != 202:
            raise NotificationRejected(response.status_code, response.text)

    async def send_template(self, recipient_email: str, subject: str, template_id: str, template_data: dict) -> bool:
        """Returns True once the provider accepted the message."""
        if not self.enabled:
            logger.info(f"Notifications disabled; skipping '{subject}' to {recipient_email}")
            return False

        payload = {
            "from": {"email": self.sender},
            "personalizations": [
                {
                    "to": [{"email": recipient_email}],
                    "dynamic_template_data": template_data,
                }
            ],
            "subject": subject,
            "template_id": template_id,
        }
        await self._post(payload)
        logger.info(f"Notification '{subject}' accepted for {recipient_email}")
        return True

async def dispatch_appointment_confirmation(
    service: NotificationService,
    recipient_email: Optional[str],
    username: str,
    specialist_name: str,
    day: date,
    time: str,
) -> bool:
    if not recipient_email:
        logger.warning(f"No email address for {username}; confirmation not sent")
        return False
    try:
        return await service.send_template(
            recipient_email=recipient_email,
            subject="Appointment update",
            template_id=settings.APPOINTMENT_CONFIRMATION_TEMPLATE_ID,
            template_data={
                "username": username,
                "time": time,
                "date": friendly_date(day),
                "specialist_name": specialist_name,
            },
        )
    except RetryError as exc:
        logger.error(f"Appointment confirmation to {recipient_email} failed after retries: {exc.last_attempt.exception()}")
    except Exception:
        logger.exception(f"Appointment confirmation to {recipient_email} failed")
    return False

def get_notification_service() -> NotificationService:
    return NotificationService()
