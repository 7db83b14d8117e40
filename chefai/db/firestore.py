"""
Firestore database configuration and initialization
"""
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from chefai.config import Settings, get_settings

logger = logging.getLogger(__name__)


def initialize_firebase_app(settings: Optional[Settings] = None) -> firebase_admin.App:
    """
    Initialize the default Firebase app once per process.

    Uses the service account key file when FIREBASE_SERVICE_ACCOUNT_PATH
    points at one, otherwise Application Default Credentials (Cloud Run,
    App Engine, gcloud auth).
    """
    settings = settings or get_settings()
    if firebase_admin._apps:
        return firebase_admin.get_app()

    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket

    service_account_path = settings.firebase_service_account_path
    if service_account_path and os.path.exists(service_account_path):
        logger.info("Initializing Firebase with service account: %s", service_account_path)
        cred = credentials.Certificate(service_account_path)
        return firebase_admin.initialize_app(cred, options or None)

    logger.info("No service account found, using default credentials")
    return firebase_admin.initialize_app(options=options or None)


def initialize_firestore(settings: Optional[Settings] = None):
    """
    Initialize Firestore database connection.

    Returns:
        Firestore client instance
    """
    app = initialize_firebase_app(settings)
    client = firestore.client(app)
    logger.info("Firestore initialized")
    return client
