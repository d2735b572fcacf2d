"""Dropbox image uploads for profile and banner pictures."""

import json
import logging
from typing import Any

import httpx

from src.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

DROPBOX_TOKEN_URL = "https://api.dropboxapi.com/oauth2/token"
DROPBOX_UPLOAD_URL = "https://content.dropboxapi.com/2/files/upload"
DROPBOX_SHARE_URL = "https://api.dropboxapi.com/2/sharing/create_shared_link_with_settings"

BANNER_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})
PROFILE_IMAGE_TYPES = BANNER_IMAGE_TYPES | {"image/ico"}


def direct_link(shared_url: str) -> str:
    """Turn a Dropbox share link into one that serves the raw file."""
    if "dl=0" in shared_url:
        return shared_url.replace("dl=0", "raw=1")
    separator = "&" if "?" in shared_url else "?"
    return f"{shared_url}{separator}raw=1"


class DropboxUploader:
    """Uploads image bytes to Dropbox and returns a public URL.

    Every upload needs a fresh short-lived access token, obtained from the
    long-lived refresh token via get_access_token(). Failures are logged
    and reported as None so the caller can decide how to fail the request.
    """

    def __init__(self, http: httpx.AsyncClient, settings: Settings | None = None) -> None:
        """Initialize the uploader.

        Args:
            http: Shared async HTTP client created at application startup.
            settings: Optional settings override (defaults to cached settings).
        """
        self.http = http
        self.settings = settings or get_settings()

    async def get_access_token(self) -> str | None:
        """Exchange the configured refresh token for an access token.

        Returns:
            str | None: The access token, or None if it could not be obtained.
        """
        if not self.settings.dropbox_refresh_token:
            logger.error("Dropbox refresh token is not configured")
            return None

        try:
            response = await self.http.post(
                DROPBOX_TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self.settings.dropbox_refresh_token,
                    "client_id": self.settings.dropbox_app_key,
                    "client_secret": self.settings.dropbox_app_secret,
                },
            )
            response.raise_for_status()
            token = response.json().get("access_token")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to get Dropbox access token: %s", e)
            return None

        if not token:
            logger.error("Dropbox token response did not include an access token")
            return None
        return token

    async def upload(self, content: bytes, filename: str, access_token: str) -> str | None:
        """Upload a file and create a public link to it.

        Args:
            content: Decoded file bytes.
            filename: Client-supplied file name.
            access_token: Token from get_access_token().

        Returns:
            str | None: Direct URL to the uploaded file, or None on failure.
        """
        path = f"{self.settings.dropbox_upload_folder.rstrip('/')}/{filename}"
        auth_header = {"Authorization": f"Bearer {access_token}"}

        try:
            upload_response = await self.http.post(
                DROPBOX_UPLOAD_URL,
                content=content,
                headers={
                    **auth_header,
                    "Content-Type": "application/octet-stream",
                    "Dropbox-API-Arg": json.dumps(
                        {"path": path, "mode": "add", "autorename": True, "mute": True}
                    ),
                },
            )
            upload_response.raise_for_status()
            uploaded_path = upload_response.json().get("path_lower") or path

            share_response = await self.http.post(
                DROPBOX_SHARE_URL,
                headers=auth_header,
                json={"path": uploaded_path, "settings": {"requested_visibility": "public"}},
            )
            shared_url = self._shared_url(share_response)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Dropbox upload failed for %s: %s", path, e)
            return None

        if not shared_url:
            logger.error("Dropbox did not return a shared link for %s", uploaded_path)
            return None

        logger.info("Uploaded %d bytes to Dropbox at %s", len(content), uploaded_path)
        return direct_link(shared_url)

    @staticmethod
    def _shared_url(response: httpx.Response) -> str | None:
        body: dict[str, Any] = response.json()
        # An existing link for the same path is returned inside the 409 error
        if response.status_code == 409:
            existing = body.get("error", {}).get("shared_link_already_exists", {})
            return existing.get("metadata", {}).get("url")
        response.raise_for_status()
        return body.get("url")
