"""
Account Service

Registration, admin creation, login and profile lookup. Passwords are
bcrypt-hashed before storage and the hash never leaves this module's
callers in a response (see models.public_user).
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from menu_api.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from menu_api.core.resilience import db_operation_with_timeout
from menu_api.core.security import TokenService, get_token_service, hash_password, verify_password
from menu_api.models import UserDocument, UserRole, public_user
from menu_api.services.storage import BaseUserStore, get_document_store

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class AuthResult:
    """A user (public view) plus an issued token, if any."""
    user: dict[str, Any]
    token: Optional[str] = None


def required_field_errors(fields: dict[str, Optional[str]]) -> list[str]:
    """'<field> is required' for each missing or blank value."""
    errors = []
    for name, value in fields.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"{name} is required")
    return errors


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    """User account operations over a user store."""

    def __init__(self, store: BaseUserStore, tokens: TokenService):
        self.store = store
        self.tokens = tokens

    async def _create_account(
        self,
        name: Optional[str],
        email: Optional[str],
        phone_number: Optional[str],
        password: Optional[str],
        role: UserRole,
    ) -> dict[str, Any]:
        errors = required_field_errors({
            "name": name,
            "email": email,
            "phoneNumber": phone_number,
            "password": password,
        })
        if errors:
            raise InvalidInputError("Validation failed", errors=errors)

        email = normalize_email(email)
        phone_number = phone_number.strip()

        existing = await db_operation_with_timeout(
            lambda: self.store.find_by_email_or_phone(email, phone_number)
        )
        if existing:
            if existing.get("email") == email:
                raise ConflictError("User with this email already exists")
            raise ConflictError("User with this phone number already exists")

        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        try:
            document = UserDocument(
                name=name,
                email=email,
                phone_number=phone_number,
                role=role,
                password_hash="pending",
            )
        except ValidationError as e:
            raise InvalidInputError.from_validation_error(e)
        document.password_hash = await asyncio.to_thread(hash_password, password)

        user = await db_operation_with_timeout(lambda: self.store.create(document.to_document()))
        logger.info(f"Account created: {user['email']} (role={user['role']})")
        return user

    async def register(
        self,
        name: Optional[str],
        email: Optional[str],
        phone_number: Optional[str],
        password: Optional[str],
    ) -> AuthResult:
        """
        Create a regular user and issue a token.

        Raises:
            InvalidInputError: Missing fields, short password, bad formats
            ConflictError: Email or phone number already registered
        """
        user = await self._create_account(name, email, phone_number, password, UserRole.USER)
        return AuthResult(user=public_user(user), token=self.tokens.issue(user))

    async def create_admin(
        self,
        name: Optional[str],
        email: Optional[str],
        phone_number: Optional[str],
        password: Optional[str],
    ) -> AuthResult:
        """Same contract as register() with role=admin and no token."""
        user = await self._create_account(name, email, phone_number, password, UserRole.ADMIN)
        return AuthResult(user=public_user(user))

    async def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """
        Check credentials, stamp lastLogin and issue a token.

        Unknown email and wrong password produce the same message.

        Raises:
            InvalidInputError: Missing fields
            UnauthorizedError: Bad credentials or deactivated account
        """
        errors = required_field_errors({"email": email, "password": password})
        if errors:
            raise InvalidInputError("Validation failed", errors=errors)

        email = normalize_email(email)
        user = await db_operation_with_timeout(lambda: self.store.find_by_email(email))
        if not user:
            logger.info("Login failed: unknown email")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not user.get("isActive", True):
            raise UnauthorizedError("Account is deactivated. Please contact support.")

        if not await asyncio.to_thread(verify_password, password, user.get("passwordHash", "")):
            logger.info(f"Login failed: wrong password for {user['id']}")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        now = datetime.now(timezone.utc)
        updated = await db_operation_with_timeout(
            lambda: self.store.update(user["id"], {"lastLogin": now})
        )
        user = updated or {**user, "lastLogin": now}

        logger.info(f"Login successful: {user['id']}")
        return AuthResult(user=public_user(user), token=self.tokens.issue(user))

    async def get_profile(self, user_id: str) -> dict[str, Any]:
        """
        Raises:
            NotFoundError: The id does not resolve to a user
        """
        user = await db_operation_with_timeout(lambda: self.store.find_by_id(user_id))
        if not user:
            raise NotFoundError("User not found")
        return public_user(user)


def get_account_service() -> AccountService:
    """Account service bound to the active document store."""
    return AccountService(get_document_store().users, get_token_service())
