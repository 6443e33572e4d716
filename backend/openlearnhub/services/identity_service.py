import asyncio
import logging
from typing import Any, Dict, Optional

from firebase_admin import auth
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import BaseModel, ConfigDict

from ..errors import AccountCreationError, InvalidFederatedTokenError, UpstreamError

logger = logging.getLogger("openlearnhub.services.identity_service")

USERS_COLLECTION = "users"
DEFAULT_FEDERATED_NAME = "Google User"


class UserAccount(BaseModel):
    # Profile documents may carry fields beyond the ones modelled here.
    model_config = ConfigDict(extra="allow")

    uid: str
    fullName: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None

    def profile(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"uid"})


class IdentityGateway:
    """
    Firebase Authentication accounts plus the Firestore `users` profiles.

    Firebase Auth admin calls block, so they run in a worker thread.
    Nothing is cached and nothing is retried.
    """

    def __init__(self, firebase_app, db, auth_api=auth):
        self._app = firebase_app
        self._db = db
        self._auth = auth_api

    def _users(self):
        return self._db.collection(USERS_COLLECTION)

    async def create_account(self, email: str, password: str, display_name: str) -> str:
        try:
            user = await asyncio.to_thread(
                self._auth.create_user,
                email=email,
                password=password,
                display_name=display_name,
                app=self._app,
            )
        except (FirebaseError, ValueError) as e:
            logger.error(f"Account creation failed for {email}: {e}")
            raise AccountCreationError(str(e))
        logger.info(f"Created account {user.uid}")
        return user.uid

    async def delete_account(self, uid: str) -> None:
        await asyncio.to_thread(self._auth.delete_user, uid, app=self._app)
        logger.info(f"Deleted account {uid}")

    async def find_by_email(self, email: str) -> Optional[UserAccount]:
        query = self._users().where(filter=FieldFilter("email", "==", email)).limit(1)
        try:
            docs = await query.get()
            for doc in docs:
                data = doc.to_dict() or {}
                data.pop("uid", None)
                return UserAccount(uid=doc.id, **data)
        except Exception as e:
            logger.error(f"User lookup failed: {e}")
            raise UpstreamError(str(e))
        return None

    async def verify_federated_token(self, id_token: str) -> Dict[str, Optional[str]]:
        """Verify a Firebase ID token issued after a Google sign-in."""
        try:
            decoded = await asyncio.to_thread(self._auth.verify_id_token, id_token, app=self._app)
        except (FirebaseError, ValueError) as e:
            logger.warning(f"Federated token verification failed: {e}")
            raise InvalidFederatedTokenError(str(e))

        return {
            "uid": decoded["uid"],
            "email": decoded.get("email"),
            "name": decoded.get("name"),
        }

    async def upsert_profile(self, uid: str, profile: Dict[str, Any]) -> bool:
        """
        Write the profile only if none exists yet; an existing record is never
        overwritten. Returns True when this call created the record.
        """
        try:
            await self._users().document(uid).create(profile)
        except AlreadyExists:
            return False
        return True

    async def register(self, full_name: str, username: str, email: str, password: str) -> str:
        """
        Create the auth account and its profile as one operation.
        If the profile write fails the new account is deleted again.
        """
        uid = await self.create_account(email, password, full_name)
        try:
            await self._users().document(uid).set({
                "fullName": full_name,
                "username": username,
                "email": email,
            })
        except Exception as e:
            logger.error(f"Profile write failed for {uid}, rolling back account: {e}")
            try:
                await self.delete_account(uid)
            except Exception as cleanup_error:
                logger.error(f"Rollback of account {uid} failed: {cleanup_error}")
            raise AccountCreationError(f"Could not store user profile: {e}")
        return uid

    async def sign_in_with_google(self, id_token: str) -> Dict[str, Optional[str]]:
        """Verify the ID token and store a profile on first sign-in."""
        identity = await self.verify_federated_token(id_token)
        email = identity["email"] or ""
        created = await self.upsert_profile(identity["uid"], {
            "fullName": identity["name"] or DEFAULT_FEDERATED_NAME,
            "username": email.split("@")[0],
            "email": email,
        })
        if created:
            logger.info(f"Stored profile for first Google sign-in {identity['uid']}")
        return identity
