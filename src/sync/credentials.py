"""Strava access-token lookup for the sync engine.

Tokens are obtained and refreshed elsewhere (the OAuth flow is not part of
this package). This module only reads what that flow left behind.
"""

import json
import os
import time
from pathlib import Path
from typing import Protocol

DEFAULT_TOKEN_FILE = ".strava-tokens.json"
EXPIRY_MARGIN_SECONDS = 60


class AuthRequired(Exception):
    """No valid Strava access token is available."""


class TokenProvider(Protocol):
    def get_valid_access_token(self) -> str: ...


class TokenFileProvider:
    """Read the access token from STRAVA_ACCESS_TOKEN or a token JSON file.

    The file holds the OAuth token response (``access_token``, ``expires_at``).
    An environment token is trusted as-is; a file token within a minute of
    ``expires_at`` is treated as expired.
    """

    def __init__(self, token_file: str | Path | None = None, clock=time.time):
        self.token_file = Path(
            token_file or os.environ.get("STRAVA_TOKEN_FILE") or DEFAULT_TOKEN_FILE
        )
        self.clock = clock

    def get_valid_access_token(self) -> str:
        env_token = os.environ.get("STRAVA_ACCESS_TOKEN")
        if env_token:
            return env_token

        if not self.token_file.is_file():
            raise AuthRequired(f"Token file {self.token_file} not found")
        try:
            tokens = json.loads(self.token_file.read_text())
        except (OSError, ValueError) as e:
            raise AuthRequired(f"Token file {self.token_file} is unreadable: {e}") from e

        access_token = tokens.get("access_token") if isinstance(tokens, dict) else None
        if not access_token:
            raise AuthRequired(f"Token file {self.token_file} has no access_token")

        expires_at = tokens.get("expires_at")
        if expires_at is not None and self.clock() > expires_at - EXPIRY_MARGIN_SECONDS:
            raise AuthRequired("Strava access token has expired; re-authorize to refresh it")
        return access_token
