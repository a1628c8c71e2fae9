"""
Authentication module — Service account (domain-wide delegation) or a
pre-issued access token.
The service account flow signs an RS256 JWT assertion with cryptography
and exchanges it at Google's OAuth 2.0 token endpoint.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Optional

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from ..config import AuthConfig, ServiceAccountAuth, TOKEN_URL

logger = logging.getLogger("workspace_license_audit.auth")

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def build_assertion(key_info: dict, subject: str, scopes: list[str], now: Optional[int] = None) -> str:
    """Sign a JWT bearer assertion for a service account key."""
    try:
        private_key = serialization.load_pem_private_key(
            key_info["private_key"].encode("utf-8"), password=None
        )
    except (KeyError, ValueError, TypeError) as e:
        raise AuthenticationError(f"Invalid service account private key: {e}")

    issued_at = int(now if now is not None else time.time())
    header = {"alg": "RS256", "typ": "JWT"}
    if key_info.get("private_key_id"):
        header["kid"] = key_info["private_key_id"]
    claims = {
        "iss": key_info.get("client_email", ""),
        "scope": " ".join(scopes),
        "aud": key_info.get("token_uri", TOKEN_URL),
        "iat": issued_at,
        "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
    }
    if subject:
        claims["sub"] = subject

    signing_input = (
        _b64url(json.dumps(header, separators=(",", ":")).encode("utf-8"))
        + "."
        + _b64url(json.dumps(claims, separators=(",", ":")).encode("utf-8"))
    )
    signature = private_key.sign(
        signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256()
    )
    return f"{signing_input}.{_b64url(signature)}"


class Authenticator:
    """
    Acquires a bearer token for the Google Workspace APIs.
    Supports:
      - Service account with domain-wide delegation (impersonating an admin)
      - A pre-issued access token (e.g. from `gcloud auth print-access-token`)
    """

    def __init__(self, config: AuthConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport
        self._access_token: Optional[str] = None

    async def acquire_token(self) -> str:
        """Acquire an access token based on configured auth mode."""
        if self.config.mode == "service_account":
            return await self._acquire_service_account_token()
        elif self.config.mode == "token":
            if not self.config.access_token:
                raise AuthenticationError(
                    "Token mode selected but no access token given "
                    "(use --access-token or GOOGLE_ACCESS_TOKEN)."
                )
            self._access_token = self.config.access_token
            return self._access_token
        else:
            raise AuthenticationError(f"Unknown auth mode: {self.config.mode}")

    async def _acquire_service_account_token(self) -> str:
        sa_config: ServiceAccountAuth = self.config.service_account
        if not sa_config.credentials_path:
            raise AuthenticationError(
                "No service account key configured "
                "(use --credentials or GOOGLE_APPLICATION_CREDENTIALS)."
            )
        if not sa_config.subject:
            logger.warning(
                "No admin subject configured; Admin SDK calls usually require "
                "domain-wide delegation (use --subject or WORKSPACE_ADMIN_SUBJECT)."
            )

        try:
            with open(sa_config.credentials_path, "r", encoding="utf-8") as f:
                key_info = json.load(f)
        except FileNotFoundError:
            raise AuthenticationError(
                f"Service account key file not found: {sa_config.credentials_path}"
            )
        except (OSError, json.JSONDecodeError) as e:
            raise AuthenticationError(f"Failed to load service account key: {e}")

        logger.info(
            f"Authenticating as {key_info.get('client_email', '?')}"
            + (f" on behalf of {sa_config.subject}" if sa_config.subject else "")
        )
        assertion = build_assertion(key_info, sa_config.subject, sa_config.scopes)
        token_uri = key_info.get("token_uri", TOKEN_URL)

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(
                    token_uri,
                    data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Token request failed: {e}")

        try:
            result = response.json()
        except ValueError:
            result = {}

        if response.status_code == 200 and "access_token" in result:
            self._access_token = result["access_token"]
            logger.info("Service account authentication successful.")
            return self._access_token

        error = result.get("error_description", result.get("error", response.text[:200]))
        raise AuthenticationError(f"Service account auth failed ({response.status_code}): {error}")

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token
