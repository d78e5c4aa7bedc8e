"""Profile storage and bearer-token authorization."""

import logging
import secrets
from pathlib import Path

from .errors import (
    AuthenticationError,
    DuplicateProfileError,
    InvalidRoleError,
    PermissionDeniedError,
)
from .json_store import JsonFileStore
from .models import PROFILE_ROLES, Profile

logger = logging.getLogger(__name__)

PROFILES_FILE = "profiles.json"


class ProfileStore(JsonFileStore):
    """Manages shopper and staff profiles keyed by API token."""

    collection = "profiles"

    def __init__(self, data_dir: Path):
        super().__init__(data_dir, PROFILES_FILE)

    def list_profiles(self) -> list[Profile]:
        return [Profile.from_dict(p) for p in self._records()]

    def add_profile(self, email: str, role: str = "customer") -> Profile:
        """
        Register a profile and issue its API token.

        Raises:
            DuplicateProfileError: If the email is already registered.
        """
        if role not in PROFILE_ROLES:
            raise InvalidRoleError(role, PROFILE_ROLES)

        profile = Profile.create(email=email, role=role, api_token=secrets.token_urlsafe(24))
        with self._lock():
            data = self._load_data()
            if any(p["email"] == profile.email for p in data[self.collection]):
                raise DuplicateProfileError(profile.email)
            data[self.collection].append(profile.to_dict())
            self._save_data(data)

        logger.info("Registered %s profile %s", role, profile.email)
        return profile

    def find_by_token(self, token: str) -> Profile | None:
        for p in self._records():
            if secrets.compare_digest(p["api_token"].encode(), token.encode()):
                return Profile.from_dict(p)
        return None

    def authenticate(self, authorization: str | None) -> Profile:
        """
        Resolve an ``Authorization: Bearer <token>`` header to a profile.

        Raises:
            AuthenticationError: If the header is missing, malformed or unknown.
        """
        if not authorization:
            raise AuthenticationError()
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Malformed authorization header")
        profile = self.find_by_token(token.strip())
        if profile is None:
            raise AuthenticationError("Invalid or expired session")
        return profile

    def require_admin(self, authorization: str | None) -> Profile:
        """
        Authenticate and check for the admin role.

        Raises:
            AuthenticationError: If the caller isn't authenticated.
            PermissionDeniedError: If the caller isn't an admin.
        """
        profile = self.authenticate(authorization)
        if not profile.is_admin:
            logger.warning("Profile %s denied admin access", profile.email)
            raise PermissionDeniedError("admin")
        return profile
