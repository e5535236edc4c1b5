"""Google OAuth 2.0 client.

Runs the authorization-code flow and turns the provider's userinfo
response into an ``ExternalProfile``.
"""

import logging
from functools import lru_cache
from urllib.parse import urlencode

import httpx

from app.config import get_settings
from app.services.auth import ExternalProfile

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class OAuthError(Exception):
    """Raised when the OAuth flow fails."""
    pass


class GoogleOAuthClient:
    """Google OAuth 2.0 authorization-code client."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            client_id: Google OAuth client ID
            client_secret: Google OAuth client secret
            redirect_uri: Callback URL registered with Google
            transport: Optional httpx transport (used by tests)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=10.0, transport=self._transport)
        return self._client

    def authorization_url(self, state: str) -> str:
        """Build the URL to send the browser to."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": "openid email profile",
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    def fetch_profile(self, code: str) -> ExternalProfile:
        """Exchange an authorization code for the user's verified profile.

        Raises:
            OAuthError: If the token exchange or userinfo request fails
        """
        access_token = self._exchange_code(code)
        info = self._get_json(
            "userinfo",
            lambda: self.client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            ),
        )

        subject_id = info.get("sub")
        if not subject_id:
            raise OAuthError("Google profile has no subject id")

        logger.info("Google OAuth completed", extra={"subject_id": subject_id})
        return ExternalProfile(
            subject_id=str(subject_id),
            email=info.get("email"),
            display_name=info.get("name"),
        )

    def _exchange_code(self, code: str) -> str:
        data = {
            "code": code,
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
        }
        token_data = self._get_json(
            "token", lambda: self.client.post(GOOGLE_TOKEN_URL, data=data)
        )
        access_token = token_data.get("access_token")
        if not access_token:
            raise OAuthError("No access token in Google response")
        return access_token

    def _get_json(self, step: str, send) -> dict:
        try:
            response = send()
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Google OAuth request rejected",
                extra={"step": step, "status_code": e.response.status_code},
            )
            raise OAuthError(f"Google {step} request failed") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Google OAuth request error", extra={"step": step, "error": str(e)})
            raise OAuthError(f"Google {step} request failed") from e


@lru_cache
def get_oauth_client() -> GoogleOAuthClient | None:
    """Get the configured Google client, or None when sign-in is disabled."""
    settings = get_settings()
    if not settings.google_auth_enabled:
        return None
    return GoogleOAuthClient(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        redirect_uri=settings.GOOGLE_CALLBACK_URL,
    )
