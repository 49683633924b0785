"""Identity provider: password credentials and bearer tokens.

Accounts live in ``auth_user`` with bcrypt hashes. Access tokens are HS256
JWTs signed with ``SECRET_KEY`` whose subject is the account id.
"""

import datetime
from dataclasses import dataclass

import bcrypt
import jwt
from flask import current_app

from ..errors import AuthenticationError, ValidationError
from ..models import STAFF_ROLES

IDENTITY_KEY = "physiocare.identity"


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self):
        return self.role in STAFF_ROLES


def hash_password(password: str) -> bytes:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())


def require_credentials(email, password):
    if not email or not password:
        raise ValidationError("Email and password are required.")
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError("Email and password must be strings.")


def verify_password(password: str, stored_hash) -> bool:
    if not stored_hash:
        return False
    if isinstance(stored_hash, str):
        stored_hash = stored_hash.encode("utf-8")
    return bcrypt.checkpw(password.encode("utf-8"), stored_hash)


class IdentityProvider:
    algorithm = "HS256"

    def __init__(self, secret_key: str, expire_minutes: int = 60):
        self.secret_key = secret_key
        self.expire_minutes = expire_minutes

    @classmethod
    def from_app(cls, app):
        return cls(app.config["SECRET_KEY"], app.config.get("JWT_EXPIRE_MINUTES", 60))

    def create_user(self, store, email, password, role):
        require_credentials(email, password)
        if store.find_auth_user_by_email(email):
            raise ValidationError("A user with this email address has already been registered.")
        return store.add_auth_user(email, hash_password(password), role)

    def sign_in(self, store, email, password):
        """Check credentials and return ``(user, access_token)``."""
        require_credentials(email, password)
        user = store.find_auth_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid login credentials")
        return user, self.issue_token(user)

    def issue_token(self, user) -> str:
        now = datetime.datetime.now(datetime.timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "iat": now,
            "exp": now + datetime.timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def resolve_token(self, store, token) -> Principal:
        """Decode ``token`` and confirm its account still exists.

        Staff and admin tokens also need a live staff profile.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            user_id = int(payload["sub"])
        except (jwt.PyJWTError, KeyError, ValueError):
            raise AuthenticationError("Invalid or expired token.")

        user = store.get_auth_user(user_id)
        if user is None:
            raise AuthenticationError("Invalid or expired token.")
        if user.role in STAFF_ROLES and store.find_staff_for_account(user) is None:
            raise AuthenticationError("Invalid or expired token.")
        return Principal(user_id=user.id, email=user.email, role=user.role)

    def change_password(self, store, user_id, current_password, new_password):
        if not current_password or not new_password:
            raise ValidationError("Both 'currentPassword' and 'newPassword' are required.")
        if not isinstance(current_password, str) or not isinstance(new_password, str):
            raise ValidationError("Passwords must be strings.")
        user = store.get_auth_user(user_id)
        if user is None or not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect.")
        user.password_hash = hash_password(new_password)
        store.flush()
        return user


def get_identity() -> IdentityProvider:
    return current_app.extensions[IDENTITY_KEY]
