"""HTTP client for the external identity provider's users API.

Every call opens a short-lived ``httpx.AsyncClient`` with the configured
timeout. Provider errors are translated into the IAM error taxonomy here,
so services never see transport exceptions.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from jose import JWTError, jwt

from iam.infrastructure.observability import DefaultUpstreamProbe, UpstreamProbe
from iam.ports.exceptions import (
    EmailAlreadyExistsError,
    UpstreamFailureError,
    UpstreamTimeoutError,
)
from iam.ports.identity_provider import IdentityProviderUser, IIdentityProviderClient
from infrastructure.settings import IdentityProviderSettings

SERVICE_NAME = "identity_provider"
LOGIN_EXISTS_CAUSE = "login: An object with this field already exists"


class IdentityProviderClient(IIdentityProviderClient):
    """Users API client authenticating with an ``SSWS`` API token."""

    def __init__(
        self,
        settings: IdentityProviderSettings,
        probe: UpstreamProbe | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Identity provider URL, credentials and timeout
            probe: Optional domain probe for observability
            transport: Optional transport override (used by tests)
        """
        self._settings = settings
        self._base_url = settings.url.rstrip("/")
        self._probe = probe or DefaultUpstreamProbe()
        self._transport = transport

    async def list_users(
        self,
        search: str | None = None,
        limit: int | None = None,
        after: str | None = None,
        before: str | None = None,
    ) -> list[IdentityProviderUser]:
        """List users matching a search expression."""
        params: dict[str, Any] = {}
        if search:
            params["search"] = search
        if limit is not None:
            params["limit"] = limit
        if after:
            params["after"] = after
        if before:
            params["before"] = before
        response = await self._request("GET", "/api/v1/users", params=params)
        return [IdentityProviderUser.from_payload(item) for item in response.json()]

    async def get_user(self, id_or_login: str) -> IdentityProviderUser | None:
        """Fetch a user by internal id or login (email). None when unknown."""
        response = await self._request(
            "GET", f"/api/v1/users/{id_or_login}", allow_not_found=True
        )
        if response is None:
            return None
        return IdentityProviderUser.from_payload(response.json())

    async def create_user(
        self, profile: Mapping[str, Any], activate: bool = False
    ) -> IdentityProviderUser:
        """Create a user with the given profile attributes."""
        response = await self._request(
            "POST",
            "/api/v1/users",
            params={"activate": str(activate).lower()},
            json={"profile": dict(profile)},
        )
        return IdentityProviderUser.from_payload(response.json())

    async def update_user(
        self, idp_user_id: str, profile: Mapping[str, Any]
    ) -> IdentityProviderUser:
        """Partially update profile attributes."""
        response = await self._request(
            "POST", f"/api/v1/users/{idp_user_id}", json={"profile": dict(profile)}
        )
        return IdentityProviderUser.from_payload(response.json())

    async def delete_user(self, idp_user_id: str) -> None:
        """Delete a user.

        The provider deactivates on the first call and deletes on the second.
        """
        path = f"/api/v1/users/{idp_user_id}"
        await self._request("DELETE", path)
        await self._request("DELETE", path, allow_not_found=True)

    async def exchange_authorization_code(self, code: str) -> str:
        """Redeem an authorization code and return the provider's user id.

        The ``uid`` claim of the returned access token carries the id. The
        token came straight from the provider over TLS, so its signature is
        not verified here.
        """
        response = await self._request(
            "POST",
            "/oauth2/default/v1/token",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._settings.redirect_uri,
            },
            auth=(
                self._settings.client_id,
                self._settings.client_secret.get_secret_value(),
            ),
            headers={"Accept": "application/json"},
        )
        access_token = response.json().get("access_token")
        if not access_token:
            raise UpstreamFailureError("Token endpoint returned no access token")
        try:
            claims = jwt.get_unverified_claims(access_token)
        except JWTError as e:
            raise UpstreamFailureError(f"Malformed access token: {e}") from e
        uid = claims.get("uid")
        if not uid:
            raise UpstreamFailureError("Access token carries no uid claim")
        return str(uid)

    async def send_password_recovery(self, email: str) -> None:
        """Ask the provider to mail a password recovery link."""
        await self._request(
            "POST",
            "/api/v1/authn/recovery/password",
            json={"username": email, "factorType": "EMAIL"},
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"SSWS {self._settings.api_key.get_secret_value()}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        allow_not_found: bool = False,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response | None:
        """Send one request and translate failures into IAM errors.

        Returns:
            The response, or None for a 404 when ``allow_not_found`` is set
        """
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, path, headers=headers or self._headers(), **kwargs
                )
        except httpx.TimeoutException as e:
            self._probe.request_timed_out(SERVICE_NAME, method, path)
            raise UpstreamTimeoutError(f"Identity provider timed out on {path}") from e
        except httpx.HTTPError as e:
            self._probe.request_failed(SERVICE_NAME, method, path, 0, str(e))
            raise UpstreamFailureError(f"Identity provider unreachable: {e}") from e

        if response.status_code == 404 and allow_not_found:
            self._probe.request_sent(SERVICE_NAME, method, path, response.status_code)
            return None

        if response.is_error:
            summary = _error_summary(response)
            self._probe.request_failed(
                SERVICE_NAME, method, path, response.status_code, summary
            )
            if LOGIN_EXISTS_CAUSE in summary:
                raise EmailAlreadyExistsError()
            raise UpstreamFailureError(summary)

        self._probe.request_sent(SERVICE_NAME, method, path, response.status_code)
        return response


def _error_summary(response: httpx.Response) -> str:
    """Flatten the provider's ``errorSummary`` and ``errorCauses`` into one line."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if not isinstance(body, Mapping):
        return f"HTTP {response.status_code}"
    parts = [str(body.get("errorSummary") or f"HTTP {response.status_code}")]
    for cause in body.get("errorCauses") or ():
        if isinstance(cause, Mapping) and cause.get("errorSummary"):
            parts.append(str(cause["errorSummary"]))
    return "; ".join(parts)
