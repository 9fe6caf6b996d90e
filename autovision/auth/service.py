"""
User directory: email/password users with bcrypt hashes, persisted as
JSON in <data_dir>/users.json.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

from ..core.config import Settings
from ..core.exceptions import Conflict, NotFound
from ..core.logger import get_logger
from ..core.storage import JsonDocument
from .models import Role, User, utcnow
from .passwords import DEFAULT_ROUNDS, hash_password, verify_password

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "email", "password", "role", "phone", "profile_image_url"})


class UserDirectory:
    """Lookup, creation and credential checks for users."""

    def __init__(self, data_dir: Path, bcrypt_rounds: int = DEFAULT_ROUNDS):
        self._doc = JsonDocument(Path(data_dir) / "users.json")
        self.bcrypt_rounds = bcrypt_rounds

    def _load(self) -> List[User]:
        return [User(**item) for item in self._doc.load().get("users", [])]

    def list_users(self) -> List[User]:
        return self._load()

    def get_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self._load() if u.id == user_id), None)

    def get_user_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        return next((u for u in self._load() if u.email.lower() == email), None)

    def create_user(
        self,
        email: str,
        password: str,
        name: str,
        role: Role = Role.COMMON,
        phone: Optional[str] = None,
    ) -> User:
        """
        Create a new user.

        - Email must be unique (case-insensitive), Conflict otherwise.
        - Password is stored only as a bcrypt hash.
        """
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password, self.bcrypt_rounds),
            role=role,
            phone=phone,
            created_at=utcnow(),
        )
        with self._doc.update() as data:
            users = data.setdefault("users", [])
            if any(u.get("email", "").lower() == email.lower() for u in users):
                raise Conflict("Email is already registered")
            users.append(user.model_dump(mode="json"))
        logger.info("User created", user_id=user.id, role=user.role.value)
        return user

    def update_user(self, user_id: str, **changes: Any) -> User:
        """
        Apply field changes to a user.

        Accepts name, email, password, role, phone and profile_image_url;
        None means "leave as is". A new password is re-hashed, a new email
        must not belong to another user.

        Raises:
            NotFound: unknown user
            Conflict: email already registered to someone else
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")
        updates = {k: v for k, v in changes.items() if v is not None}
        password = updates.pop("password", None)
        if password:
            updates["password_hash"] = hash_password(password, self.bcrypt_rounds)

        with self._doc.update() as data:
            users = data.setdefault("users", [])
            index = next((i for i, u in enumerate(users) if u.get("id") == user_id), None)
            if index is None:
                raise NotFound("User not found")
            email = updates.get("email")
            if email and any(
                u.get("email", "").lower() == email.lower() and u.get("id") != user_id
                for u in users
            ):
                raise Conflict("Email is already registered")
            current = User(**users[index])
            updated = User(**{**current.model_dump(), **updates, "updated_at": utcnow()})
            users[index] = updated.model_dump(mode="json")
        logger.info("User updated", user_id=user_id, fields=sorted(changes))
        return updated

    def delete_user(self, user_id: str) -> User:
        """Remove a user and return the removed record."""
        with self._doc.update() as data:
            users = data.setdefault("users", [])
            match = next((u for u in users if u.get("id") == user_id), None)
            if match is None:
                raise NotFound("User not found")
            data["users"] = [u for u in users if u.get("id") != user_id]
        logger.info("User deleted", user_id=user_id)
        return User(**match)

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return user if credentials are valid, else None."""
        user = self.get_user_by_email(email)
        if not user:
            return None
        try:
            valid = verify_password(password, user.password_hash)
        except ValueError:
            logger.error("Stored password hash is malformed", user_id=user.id)
            return None
        return user if valid else None

    def ensure_seed_admin(self, settings: Settings) -> Optional[User]:
        """
        Seed the first admin when the directory is empty.

        Credentials come from AUTOVISION_ADMIN_EMAIL / AUTOVISION_ADMIN_PASSWORD
        (change in production).
        """
        if self._load():
            return None
        admin = self.create_user(
            email=settings.admin_email,
            password=settings.admin_password,
            name=settings.admin_name,
            role=Role.ADMIN,
        )
        logger.info("Seeded admin user", email=admin.email)
        return admin
