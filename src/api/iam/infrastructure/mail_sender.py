"""SparkPost transmission client implementing IMailSender.

Each mail is one POST to ``{api_url}/transmissions`` naming a stored
template and its substitution data.
"""

from __future__ import annotations

from typing import Any

import httpx

from iam.infrastructure.observability import DefaultUpstreamProbe, UpstreamProbe
from iam.ports.exceptions import UpstreamFailureError, UpstreamTimeoutError
from iam.ports.gateways import IMailSender
from infrastructure.settings import MailSettings

SERVICE_NAME = "mail"

CONFIRM_USER_TEMPLATE = "confirm-user"
CONFIRM_USER_WITH_PASSWORD_TEMPLATE = "confirm-user-with-password"
RECOVER_PASSWORD_TEMPLATE = "recover-password"


class SparkPostMailSender(IMailSender):
    """Sends the credential-flow mails through SparkPost templates."""

    def __init__(
        self,
        settings: MailSettings,
        probe: UpstreamProbe | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the sender.

        Args:
            settings: API URL, key, sender identity and timeout
            probe: Optional domain probe for observability
            transport: Optional transport override (used by tests)
        """
        self._settings = settings
        self._probe = probe or DefaultUpstreamProbe()
        self._transport = transport

    async def send_confirmation(
        self, email: str, confirmation_url: str, origin_app: str
    ) -> None:
        """Send the sign-up confirmation link."""
        await self._transmit(
            CONFIRM_USER_TEMPLATE,
            email,
            {"urlConfirm": confirmation_url, "appName": origin_app},
        )

    async def send_invitation(
        self,
        email: str,
        password: str,
        confirmation_url: str,
        origin_app: str,
        callback_url: str | None = None,
    ) -> None:
        """Send an invitation carrying a generated password."""
        url = confirmation_url
        if callback_url:
            url = str(httpx.URL(confirmation_url, params={"callbackUrl": callback_url}))
        await self._transmit(
            CONFIRM_USER_WITH_PASSWORD_TEMPLATE,
            email,
            {"urlConfirm": url, "password": password, "appName": origin_app},
        )

    async def send_password_recovery(
        self, email: str, recovery_url: str, origin_app: str
    ) -> None:
        """Send the password reset link."""
        await self._transmit(
            RECOVER_PASSWORD_TEMPLATE,
            email,
            {"urlRecover": recovery_url, "appName": origin_app},
        )

    async def _transmit(
        self, template_id: str, recipient: str, substitutions: dict[str, Any]
    ) -> None:
        if self._settings.disabled:
            self._probe.mail_skipped(template_id, recipient)
            return

        body = {
            "content": {"template_id": template_id},
            "recipients": [{"address": {"email": recipient}}],
            "substitution_data": {
                "fromEmail": self._settings.sender,
                "fromName": self._settings.sender_name,
                **substitutions,
            },
        }
        path = "/transmissions"
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.api_url.rstrip("/"),
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    path,
                    json=body,
                    headers={
                        "Authorization": self._settings.api_key.get_secret_value(),
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException as e:
            self._probe.request_timed_out(SERVICE_NAME, "POST", path)
            raise UpstreamTimeoutError("Mail service timed out") from e
        except httpx.HTTPError as e:
            self._probe.request_failed(SERVICE_NAME, "POST", path, 0, str(e))
            raise UpstreamFailureError(f"Mail service unreachable: {e}") from e

        if response.is_error:
            self._probe.request_failed(
                SERVICE_NAME, "POST", path, response.status_code, response.text[:200]
            )
            raise UpstreamFailureError(
                f"Mail service rejected {template_id} ({response.status_code})"
            )
        self._probe.request_sent(SERVICE_NAME, "POST", path, response.status_code)
