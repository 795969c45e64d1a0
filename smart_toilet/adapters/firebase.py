"""
Firebase adapters: Realtime Database report source, Firestore logs and profiles.

The Admin SDK is blocking, so every call is pushed onto a worker thread with
`asyncio.to_thread`. SDK and transport failures surface as
StoreUnavailableError so the services can treat them as expected failures.
"""

import asyncio
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import firebase_admin
import structlog
from firebase_admin import credentials, db, firestore
from firebase_admin.exceptions import FirebaseError
from google.api_core.exceptions import GoogleAPIError

from smart_toilet.config import FirebaseConfig
from smart_toilet.domain.models import Alert, CombinedRecord
from smart_toilet.services.alerts import notification_document
from smart_toilet.services.sources import StoreUnavailableError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_STORE_ERRORS = (FirebaseError, GoogleAPIError, OSError)


def initialize_firebase(config: FirebaseConfig) -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cred = (
        credentials.Certificate(config.credentials_path)
        if config.credentials_path
        else credentials.ApplicationDefault()
    )
    app = firebase_admin.initialize_app(cred, {"databaseURL": config.database_url})
    logger.info(
        "firebase_initialized",
        database_url=config.database_url,
        service_account=bool(config.credentials_path),
    )
    return app


async def _call(operation: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except _STORE_ERRORS as e:
        logger.warning("firebase_call_failed", operation=operation, error=str(e))
        raise StoreUnavailableError(f"{operation} failed: {e}") from e


class FirebaseReportSource:
    """Reads `{users_root}/{uid}` from the Realtime Database."""

    def __init__(self, config: FirebaseConfig, app: firebase_admin.App | None = None) -> None:
        self.config = config
        self.app = app

    def _reference(self, user_id: str) -> Any:
        return db.reference(f"{self.config.users_root}/{user_id}", app=self.app)

    async def fetch_user_tree(self, user_id: str) -> Mapping[str, Any] | None:
        tree = await _call("fetch_user_tree", self._reference(user_id).get)
        return tree if isinstance(tree, Mapping) else None


class _FirestoreUserCollection:
    """Shared access to `{profile_collection}/{uid}` and its subcollections."""

    def __init__(self, config: FirebaseConfig, client: Any = None) -> None:
        self.config = config
        self.client = client if client is not None else firestore.client()

    def _user_document(self, user_id: str) -> Any:
        return self.client.collection(self.config.profile_collection).document(user_id)


class FirestoreRecordLog(_FirestoreUserCollection):
    """History log at `users/{uid}/healthData/{recordId}`."""

    def _collection(self, user_id: str) -> Any:
        return self._user_document(user_id).collection(self.config.history_collection)

    async def append(self, user_id: str, record: CombinedRecord) -> None:
        # Keyed by record id, so a repeated append overwrites instead of duplicating
        document = self._collection(user_id).document(record.id)
        await _call("append_record", document.set, record.to_history_document())

    async def list_records(self, user_id: str) -> list[dict[str, Any]]:
        query = self._collection(user_id).order_by(
            "timestamp", direction=firestore.Query.DESCENDING
        )
        snapshots = await _call("list_records", query.get)
        return [snapshot.to_dict() for snapshot in snapshots]


class FirestoreNotificationLog(_FirestoreUserCollection):
    """Notification log at `users/{uid}/notifications`."""

    # Firestore rejects write batches above this size
    BATCH_LIMIT = 500

    def _collection(self, user_id: str) -> Any:
        return self._user_document(user_id).collection(self.config.notifications_collection)

    def _unread(self, user_id: str) -> Any:
        return self._collection(user_id).where(
            filter=firestore.FieldFilter("isRead", "==", False)
        )

    async def notify(self, user_id: str, alert: Alert) -> None:
        await _call("notify", self._collection(user_id).add, notification_document(alert))

    async def recent(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
        query = (
            self._collection(user_id)
            .order_by("timestamp", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        snapshots = await _call("recent_notifications", query.get)
        return [{"id": snapshot.id, **snapshot.to_dict()} for snapshot in snapshots]

    async def unread_count(self, user_id: str) -> int:
        snapshots = await _call("unread_notifications", self._unread(user_id).get)
        return len(snapshots)

    async def mark_read(self, user_id: str, notification_id: str) -> None:
        document = self._collection(user_id).document(notification_id)
        await _call("mark_read", document.update, {"isRead": True})

    async def mark_all_read(self, user_id: str) -> int:
        snapshots = list(await _call("unread_notifications", self._unread(user_id).get))

        for start in range(0, len(snapshots), self.BATCH_LIMIT):
            batch = self.client.batch()
            for snapshot in snapshots[start : start + self.BATCH_LIMIT]:
                batch.update(snapshot.reference, {"isRead": True})
            await _call("mark_all_read", batch.commit)

        if snapshots:
            logger.info("notifications_marked_read", user_id=user_id, count=len(snapshots))
        return len(snapshots)


class FirestoreProfileStore(_FirestoreUserCollection):
    """User profiles at `users/{uid}`."""

    async def get_profile(self, user_id: str) -> dict[str, Any] | None:
        snapshot = await _call("get_profile", self._user_document(user_id).get)
        return snapshot.to_dict() if snapshot.exists else None

    async def save_profile(self, user_id: str, data: Mapping[str, Any]) -> None:
        await _call("save_profile", self._user_document(user_id).set, dict(data), merge=True)
