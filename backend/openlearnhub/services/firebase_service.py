import logging
from typing import Any, Dict

import firebase_admin
from firebase_admin import credentials, firestore_async

logger = logging.getLogger("openlearnhub.services.firebase_service")


def init_firebase(service_account: Dict[str, Any]) -> firebase_admin.App:
    """
    Initialize the Firebase Admin SDK exactly once per process.
    Later calls return the already-initialized default app.
    """
    if firebase_admin._apps:
        logger.info("Firebase Admin SDK already initialized")
        return firebase_admin.get_app()

    cred = credentials.Certificate(service_account)
    firebase_app = firebase_admin.initialize_app(cred)
    logger.info("Firebase Admin SDK initialized successfully")
    return firebase_app


def get_firestore_client(firebase_app: firebase_admin.App):
    """Async Firestore client bound to the given app."""
    return firestore_async.client(app=firebase_app)
