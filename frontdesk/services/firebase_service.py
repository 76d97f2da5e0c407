import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import GoogleAPICallError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud.firestore_v1 import FieldFilter

from frontdesk.config import settings
from frontdesk.exceptions import StorageError

logger = logging.getLogger(__name__)

# Collections
PATIENTS = "patients"
DOCTORS = "doctors"
QUEUE = "queue"
APPOINTMENTS = "appointments"

Filter = Tuple[str, str, Any]


class FirebaseService:
    """Record store backed by Firestore.

    Records travel as plain dicts; the document id is exposed under ``id``
    and never written into the document body.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._db = None
        return cls._instance

    @property
    def db(self):
        """Firestore client, created on first use"""
        if self._db is None:
            self._db = self._connect()
        return self._db

    def _connect(self):
        project_id = settings.FIREBASE_PROJECT_ID or None
        cred_path = settings.GOOGLE_APPLICATION_CREDENTIALS

        try:
            if not firebase_admin._apps:
                if cred_path and os.path.exists(cred_path):
                    logger.info("Firebase init using service account file %s", cred_path)
                    cred = credentials.Certificate(cred_path)
                else:
                    logger.info("Firebase init using application default credentials")
                    cred = credentials.ApplicationDefault()
                options = {"projectId": project_id} if project_id else None
                firebase_admin.initialize_app(cred, options)

            db = firestore.client(database_id=settings.FIREBASE_DATABASE_ID)
        except (DefaultCredentialsError, ValueError) as e:
            logger.error("Failed to initialize Firebase: %s", e)
            raise StorageError("Record store is not configured") from e

        logger.info("Connected to Firestore project %s, database %s", db.project, settings.FIREBASE_DATABASE_ID)
        return db

    @contextmanager
    def _guard(self, operation: str, collection: str) -> Iterator[None]:
        try:
            yield
        except GoogleAPICallError as e:
            logger.error("Firestore %s on %s failed: %s", operation, collection, e)
            raise StorageError(f"Record store failure during {operation}") from e

    @staticmethod
    def _to_record(doc) -> Dict[str, Any]:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return data

    def _query(self, collection: str, filters: Sequence[Filter]):
        query = self.db.collection(collection)
        for field, op, value in filters:
            query = query.where(filter=FieldFilter(field, op, value))
        return query

    # ==================== RECORD OPERATIONS ====================

    async def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record with a generated id and return it"""
        body = {k: v for k, v in data.items() if k != "id"}
        with self._guard("create", collection):
            doc_ref = self.db.collection(collection).document()
            doc_ref.set(body)
        return {**body, "id": doc_ref.id}

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Get a record by id, None when absent"""
        with self._guard("get", collection):
            doc = self.db.collection(collection).document(record_id).get()
        if doc.exists:
            return self._to_record(doc)
        return None

    async def find(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Records matching every filter, optionally ordered and limited"""
        query = self._query(collection, filters)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit:
            query = query.limit(limit)

        with self._guard("find", collection):
            return [self._to_record(doc) for doc in query.stream()]

    async def count(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        """Number of records matching every filter"""
        with self._guard("count", collection):
            result = self._query(collection, filters).count().get()
        return int(result[0][0].value)

    async def update(self, collection: str, record_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Patch a record in place; None when it does not exist"""
        body = {k: v for k, v in data.items() if k != "id"}
        doc_ref = self.db.collection(collection).document(record_id)
        with self._guard("update", collection):
            if not doc_ref.get().exists:
                return None
            doc_ref.update(body)
            return self._to_record(doc_ref.get())

    async def delete(self, collection: str, record_id: str) -> None:
        with self._guard("delete", collection):
            self.db.collection(collection).document(record_id).delete()

    async def create_unless_exists(
        self,
        collection: str,
        data: Dict[str, Any],
        unique_on: Sequence[Filter],
    ) -> Optional[Dict[str, Any]]:
        """
        Insert ``data`` only if no record matches ``unique_on``.

        The existence query and the insert share one Firestore transaction,
        so two concurrent callers cannot both insert.

        Returns:
            The created record, or None when a matching record already exists
        """
        body = {k: v for k, v in data.items() if k != "id"}
        query = self._query(collection, unique_on).limit(1)
        doc_ref = self.db.collection(collection).document()

        @firestore.transactional
        def _insert(transaction) -> bool:
            if any(True for _ in transaction.get(query)):
                return False
            transaction.set(doc_ref, body)
            return True

        with self._guard("create_unless_exists", collection):
            created = _insert(self.db.transaction())

        if not created:
            return None
        return {**body, "id": doc_ref.id}


# Singleton instance
firebase_service = FirebaseService()
