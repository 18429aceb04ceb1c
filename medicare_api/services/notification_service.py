"""Best-effort verification emails through a transactional email HTTP API."""
import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class TemplateKind(str, Enum):
    DOCTOR_APPROVED = "doctor_approved"
    DOCTOR_REJECTED = "doctor_rejected"


def render_doctor_approved(doctor_name: str, dashboard_url: str) -> Tuple[str, str]:
    subject = "Congratulations! Your Doctor Account is Verified"
    html = f"""<p>Dear Dr. {doctor_name},</p>
<p>Your doctor registration has been reviewed and approved by our admin team.
You now have full access to all doctor features on our platform.</p>
<ul>
  <li>Manage your appointments and schedule</li>
  <li>Connect with patients</li>
  <li>Update your professional profile</li>
</ul>
<p><a href="{dashboard_url}">Go to Your Dashboard</a></p>"""
    return subject, html


def render_doctor_rejected(doctor_name: str, rejection_reason: Optional[str]) -> Tuple[str, str]:
    subject = "Important Update About Your Doctor Registration"
    reason_block = f"<p><strong>Reason:</strong><br/>{rejection_reason}</p>" if rejection_reason else ""
    html = f"""<p>Dear Dr. {doctor_name},</p>
<p>We regret to inform you that your doctor registration could not be approved at this time.</p>
{reason_block}
<p>If you believe this decision was made in error, please contact our support team.</p>"""
    return subject, html


class NotificationService:
    def __init__(
        self,
        api_url: str = settings.EMAIL_API_URL,
        api_key: Optional[str] = settings.EMAIL_API_KEY,
        sender: str = settings.EMAIL_FROM,
        timeout: float = settings.NOTIFICATION_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self.transport = transport

    def _is_configured(self) -> bool:
        return bool(self.api_key)

    def render(self, template: TemplateKind, payload: Dict[str, Any]) -> Tuple[str, str]:
        if template == TemplateKind.DOCTOR_APPROVED:
            return render_doctor_approved(
                payload.get("doctor_name", ""),
                payload.get("dashboard_url", settings.DASHBOARD_URL),
            )
        return render_doctor_rejected(payload.get("doctor_name", ""), payload.get("rejection_reason"))

    async def send(
        self,
        recipient_email: str,
        template: TemplateKind,
        payload: Dict[str, Any]
    ) -> Tuple[bool, Optional[str]]:
        """Send one email.

        Returns:
            (success, error message or None). Never raises.
        """
        subject, html = self.render(template, payload)

        if not self._is_configured():
            logger.info("[SIMULATED EMAIL] To: %s, Template: %s", recipient_email, template.value)
            return True, None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.sender,
                        "to": [recipient_email],
                        "subject": subject,
                        "html": html,
                    },
                )
            response.raise_for_status()
        except httpx.HTTPError as e:
            error_msg = f"Email delivery failed: {e}"
            logger.warning("%s (recipient=%s, template=%s)", error_msg, recipient_email, template.value)
            return False, error_msg

        logger.info("Email sent to %s (template=%s)", recipient_email, template.value)
        return True, None
