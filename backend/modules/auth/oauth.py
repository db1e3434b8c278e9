"""
Google OAuth 2.0 client.

Builds the consent-screen redirect and exchanges the callback code for the
user's Google profile.
"""

import logging
from urllib.parse import urlencode

import httpx

from .models import GoogleProfile
from .exceptions import OAuthError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_SCOPE = "openid email profile"


def _json_body(response: httpx.Response) -> dict:
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object from {response.url}")
    return data


class GoogleOAuthClient:
    """Authorization-code flow against Google's OAuth endpoints."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise OAuthError("Google sign-in is not configured")

    def authorization_url(self, state: str) -> str:
        """URL of Google's consent screen for this application."""
        self._require_configured()
        query = urlencode(
            {
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
                "response_type": "code",
                "scope": GOOGLE_SCOPE,
                "state": state,
                "access_type": "online",
                "prompt": "select_account",
            }
        )
        return f"{GOOGLE_AUTH_URL}?{query}"

    async def exchange_code(self, code: str) -> GoogleProfile:
        """
        Exchange an authorization code for the user's Google profile.

        Raises:
            OAuthError: If Google rejects the code, cannot be reached or
                answers with something other than a JSON object
        """
        self._require_configured()

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                token_response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "redirect_uri": self._redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                token_response.raise_for_status()
                access_token = _json_body(token_response).get("access_token")
                if not access_token:
                    raise OAuthError("Google did not return an access token")

                profile_response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                profile_response.raise_for_status()
                data = _json_body(profile_response)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Google OAuth exchange failed: {e}")
            raise OAuthError(f"Google OAuth exchange failed: {e}") from e

        return GoogleProfile(
            id=str(data.get("id", "")),
            email=data.get("email"),
            name=data.get("name"),
            verified_email=bool(data.get("verified_email", False)),
        )
