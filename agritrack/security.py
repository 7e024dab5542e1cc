import logging
import time
from typing import Dict, Optional

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlmodel import Session, select

from agritrack.config import FIREBASE_CERTS_URL, FIREBASE_PROJECT_ID
from agritrack.database import get_db
from agritrack.errors import AuthenticationError, DependencyError, PermissionDenied
from agritrack.models import User

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens against Google's published signing certificates.

    Certificates are cached until the ``max-age`` announced by Google expires.
    """

    def __init__(self, project_id: str = FIREBASE_PROJECT_ID, certs_url: str = FIREBASE_CERTS_URL):
        self.project_id = project_id
        self.certs_url = certs_url
        self._certs: Dict[str, str] = {}
        self._expires_at = 0.0

    def _fetch_certs(self) -> Dict[str, str]:
        if self._certs and time.monotonic() < self._expires_at:
            return self._certs
        try:
            response = httpx.get(self.certs_url, timeout=10.0)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Could not fetch Firebase signing certificates: %s", e)
            raise DependencyError("Identity service unavailable", details=str(e)) from e

        max_age = 3600
        for directive in response.headers.get("cache-control", "").split(","):
            name, _, seconds = directive.strip().partition("=")
            if name == "max-age" and seconds.isdigit():
                max_age = int(seconds)
        self._certs = response.json()
        self._expires_at = time.monotonic() + max_age
        return self._certs

    def verify(self, token: str) -> dict:
        """Return the decoded claims of a valid token, else raise AuthenticationError."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise AuthenticationError("Invalid token format", details=str(e)) from e

        cert = self._fetch_certs().get(header.get("kid", ""))
        if cert is None:
            raise AuthenticationError("Malformed token", details="Unknown signing key")

        try:
            claims = jwt.decode(
                token,
                cert,
                algorithms=[ALGORITHM],
                audience=self.project_id,
                issuer=f"https://securetoken.google.com/{self.project_id}",
            )
        except JWTError as e:
            raise AuthenticationError("Authentication failed", details=str(e)) from e

        if not claims.get("sub"):
            raise AuthenticationError("Authentication failed", details="Invalid token: missing uid")
        return claims


token_verifier = FirebaseTokenVerifier()
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_verifier() -> FirebaseTokenVerifier:
    return token_verifier


def resolve_caller(db: Session, claims: dict) -> User:
    """Map verified token claims onto the registered user row."""
    uid = claims["sub"]
    user = db.exec(select(User).where(User.firebase_uid == uid)).first()
    if user is None:
        raise PermissionDenied("User not registered", details="User needs to complete registration")
    return user


def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: FirebaseTokenVerifier = Depends(get_token_verifier),
) -> dict:
    """Verified Firebase claims of the caller, who may not be registered yet."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError(
            "Authorization token required",
            details='Include "Authorization: Bearer <token>" header',
        )
    return verifier.verify(credentials.credentials)


# --- Get Current User (Dependency for protected routes) ---
def get_current_user(claims: dict = Depends(get_token_claims), db: Session = Depends(get_db)) -> User:
    return resolve_caller(db, claims)


def require_admin(current_user: User, action: str) -> None:
    if (current_user.role or "").lower() != "admin":
        raise PermissionDenied(f"Only admin users can {action}", details="Insufficient permissions")
