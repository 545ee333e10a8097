"""
Login and token verification against the file-backed credential store.

Credentials arrive base64-encoded as JSON ``{"username", "password"}``.
"""

import base64
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from data_agent.errors import AuthError, ValidationError

logger = logging.getLogger(__name__)


class UserRecord(BaseModel):
    username: str
    password: str
    userids: list[str] = Field(default_factory=list)


class AuthResult(BaseModel):
    success: bool
    message: str
    username: Optional[str] = None


def decode_base64_json(data: str) -> Any:
    try:
        return json.loads(base64.b64decode(data).decode("utf-8"))
    except Exception as e:
        raise ValidationError(f"Failed to decode base64 data: {e}")


def hash_password(password: str) -> str:
    return hashlib.sha1(password.encode("utf-8")).hexdigest()


class CredentialStore:
    """users.json: ``{"users": [{"username", "password", "userids": []}]}``"""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    def _load(self) -> list[UserRecord]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise AuthError(f"Failed to load users: {e}")
        return [UserRecord.model_validate(u) for u in raw.get("users", [])]

    def _save(self, users: list[UserRecord]) -> None:
        try:
            data = {"users": [u.model_dump() for u in users]}
            self._path.write_text(json.dumps(data, indent=4), encoding="utf-8")
        except OSError as e:
            raise AuthError(f"Failed to save users: {e}")

    def find_by_username(self, username: str) -> Optional[UserRecord]:
        for user in self._load():
            if user.username == username:
                return user
        return None

    def record_session_id(self, username: str, session_id: str) -> bool:
        """Remember a session id for a user. False if the user is unknown or saving fails."""
        try:
            users = self._load()
            user = next((u for u in users if u.username == username), None)
            if user is None:
                return False
            if session_id not in user.userids:
                user.userids.append(session_id)
                self._save(users)
            return True
        except AuthError as e:
            logger.error(f"Error recording session id: {e}")
            return False


def validate_user(store: CredentialStore, username: Optional[str], password: Optional[str]) -> AuthResult:
    if not username or not password:
        return AuthResult(success=False, message="Username and password are required")

    user = store.find_by_username(username)
    if user is None:
        return AuthResult(success=False, message="Invalid username")

    # Incoming password is compared as-is against the SHA-1 of the stored one.
    if hash_password(user.password) != password:
        return AuthResult(success=False, message="Invalid password")

    return AuthResult(success=True, message="Authentication successful", username=user.username)


def authenticate(store: CredentialStore, credentials: dict[str, Any], session_id: Optional[str]) -> AuthResult:
    """Validate credentials and record the requesting session id."""
    result = validate_user(store, credentials.get("username"), credentials.get("password"))
    if not result.success:
        return result
    if session_id and not store.record_session_id(credentials["username"], session_id):
        return AuthResult(success=False, message="Failed to store user session")
    return result


def _decode_credentials(data: str, what: str) -> dict[str, Any]:
    credentials = decode_base64_json(data)
    if not isinstance(credentials, dict):
        raise ValidationError(f"{what} must encode a JSON object")
    return credentials


class Auth:
    """Login/verify entry points used by the session handlers."""

    def __init__(self, store: CredentialStore):
        self.store = store

    def login(self, login_data: str, session_id: Optional[str]) -> AuthResult:
        return authenticate(self.store, _decode_credentials(login_data, "Login data"), session_id)

    def verify(self, token: str) -> AuthResult:
        credentials = _decode_credentials(token, "Token")
        return validate_user(self.store, credentials.get("username"), credentials.get("password"))
