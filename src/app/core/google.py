"""
Google API Clients

Builds service-account credentials and the Sheets / Drive API clients.
Clients are constructed explicitly at startup and handed to the store and
storage backends, never imported as module globals.
"""

import logging
from dataclasses import dataclass
from typing import Any

from google.oauth2 import service_account
from googleapiclient.discovery import build

from app.core.config import Settings

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/drive.file",
]


class GoogleConfigurationError(Exception):
    """Raised when service-account settings are missing."""


@dataclass(frozen=True)
class GoogleServices:
    """Authenticated Google API resources."""

    sheets: Any
    drive: Any


def has_google_credentials(config: Settings) -> bool:
    """Check whether service-account credentials are configured."""
    return bool(config.google_cloud_client_email and config.google_cloud_private_key)


def build_credentials(config: Settings) -> service_account.Credentials:
    """
    Create service-account credentials from settings.

    Raises:
        GoogleConfigurationError: If the client email or private key is missing.
    """
    if not has_google_credentials(config):
        raise GoogleConfigurationError(
            "GOOGLE_CLOUD_CLIENT_EMAIL and GOOGLE_CLOUD_PRIVATE_KEY must be set"
        )

    info = {
        "type": "service_account",
        "client_email": config.google_cloud_client_email,
        "private_key": config.google_private_key,
        "token_uri": "https://oauth2.googleapis.com/token",
    }
    return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)


def build_google_services(config: Settings) -> GoogleServices:
    """Build the Sheets v4 and Drive v3 clients."""
    credentials = build_credentials(config)
    sheets = build("sheets", "v4", credentials=credentials, cache_discovery=False)
    drive = build("drive", "v3", credentials=credentials, cache_discovery=False)
    logger.info("Google Sheets and Drive clients initialized")
    return GoogleServices(sheets=sheets, drive=drive)
