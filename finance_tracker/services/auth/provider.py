"""
Email/Password Auth Provider

Accounts live in the `users` collection of the document store:

    email        lower-cased, unique among users
    displayName  optional
    photoUrl     avatar URL (default avatar when none was uploaded)
    passwordHash bcrypt hash, never leaves this module
    createdAt    ISO timestamp

The document id is the user's uid.
"""

from abc import ABC, abstractmethod
from typing import Optional

import bcrypt
import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.documents import USERS, CollectionQuery, Document
from finance_tracker.models.records import UploadedImage, UserProfile, utc_now
from finance_tracker.services.auth.session import AuthError, SessionContext
from finance_tracker.services.image import (
    ObjectStorageError,
    ObjectStorageInterface,
    avatar_path,
)
from finance_tracker.services.storage import DocumentStoreInterface
from finance_tracker.validation import is_valid_email


logger = structlog.get_logger(__name__)


class AuthProviderInterface(ABC):
    """Abstract interface for account operations."""

    @abstractmethod
    async def sign_up(
        self,
        session: SessionContext,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        avatar: Optional[UploadedImage] = None,
    ) -> UserProfile:
        """Create an account and sign it in."""
        pass

    @abstractmethod
    async def sign_in(
        self,
        session: SessionContext,
        email: str,
        password: str,
    ) -> UserProfile:
        """Sign in. Raises AuthError on bad credentials."""
        pass

    @abstractmethod
    async def sign_out(self, session: SessionContext) -> None:
        pass

    @abstractmethod
    async def update_profile(
        self,
        session: SessionContext,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> UserProfile:
        """Update the signed-in user's display name and/or avatar URL."""
        pass


def _profile_from_document(document: Document) -> UserProfile:
    return UserProfile(
        uid=document.id,
        email=document.get("email", ""),
        display_name=document.get("displayName"),
        photo_url=document.get("photoUrl"),
    )


class DocumentStoreAuthProvider(AuthProviderInterface):
    """Auth provider backed by the `users` collection and bcrypt."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        object_storage: Optional[ObjectStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._object_storage = object_storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    async def _find_by_email(self, email: str) -> Optional[Document]:
        query = CollectionQuery(collection=USERS).where("email", email)
        documents = await self._store.run_query(query)
        return documents[0] if documents else None

    async def _upload_avatar(self, uid: str, avatar: UploadedImage) -> str:
        """Upload an avatar, falling back to the default one on failure."""
        default_url = self._settings.default_avatar_url
        if self._object_storage is None:
            return default_url

        try:
            stored = await self._object_storage.upload_image(avatar, avatar_path(uid))
        except ObjectStorageError as e:
            logger.warning("avatar_upload_failed", uid=uid, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="object_storage",
                    error_message=str(e),
                    uid=uid,
                )
            return default_url
        return stored.url

    async def sign_up(
        self,
        session: SessionContext,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        avatar: Optional[UploadedImage] = None,
    ) -> UserProfile:
        email = (email or "").strip().lower()
        display_name = (display_name or "").strip() or None

        if not is_valid_email(email):
            raise AuthError("Please enter a valid email address.")
        if len(password or "") < self._settings.min_password_length:
            raise AuthError(
                f"Password should be at least {self._settings.min_password_length} characters"
            )
        if await self._find_by_email(email) is not None:
            raise AuthError("Email already registered")

        password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
        uid = await self._store.add_document(USERS, {
            "email": email,
            "displayName": display_name,
            "photoUrl": self._settings.default_avatar_url,
            "passwordHash": password_hash,
            "createdAt": utc_now().isoformat(),
        })

        photo_url = self._settings.default_avatar_url
        if avatar is not None:
            photo_url = await self._upload_avatar(uid, avatar)
            if photo_url != self._settings.default_avatar_url:
                await self._store.update_document(USERS, uid, {"photoUrl": photo_url})

        profile = UserProfile(
            uid=uid,
            email=email,
            display_name=display_name,
            photo_url=photo_url,
        )
        session.set_user(profile)

        logger.info("user_signed_up", uid=uid)
        if self._audit_logger:
            await self._audit_logger.log_account_event(AuditEventType.USER_SIGNED_UP, uid, email)
        return profile

    async def sign_in(
        self,
        session: SessionContext,
        email: str,
        password: str,
    ) -> UserProfile:
        email = (email or "").strip().lower()
        document = await self._find_by_email(email) if email else None

        password_hash = document.get("passwordHash") if document else None
        if not password_hash or not bcrypt.checkpw(
            (password or "").encode("utf-8"),
            password_hash.encode("utf-8"),
        ):
            logger.info("sign_in_rejected", email=email)
            raise AuthError("Invalid credentials.")

        profile = _profile_from_document(document)
        session.set_user(profile)

        if self._audit_logger:
            await self._audit_logger.log_account_event(AuditEventType.USER_SIGNED_IN, profile.uid)
        return profile

    async def sign_out(self, session: SessionContext) -> None:
        uid = session.uid
        session.clear()
        if uid and self._audit_logger:
            await self._audit_logger.log_account_event(AuditEventType.USER_SIGNED_OUT, uid)

    async def update_profile(
        self,
        session: SessionContext,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> UserProfile:
        user = session.require_user("You must be logged in to update your profile")

        fields = {}
        if display_name is not None:
            fields["displayName"] = display_name.strip() or None
        if photo_url is not None:
            fields["photoUrl"] = photo_url.strip() or self._settings.default_avatar_url
        if not fields:
            return user

        document = await self._store.update_document(USERS, user.uid, fields)
        profile = _profile_from_document(document)
        session.set_user(profile)

        if self._audit_logger:
            await self._audit_logger.log_account_event(AuditEventType.PROFILE_UPDATED, user.uid)
        return profile
