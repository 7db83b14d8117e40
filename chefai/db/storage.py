"""
Firebase Storage uploads for post media.
"""
import logging
from typing import Optional

from firebase_admin import storage

from chefai.ai.media import decode_data_uri, split_data_uri
from chefai.config import Settings
from chefai.db.firestore import initialize_firebase_app

logger = logging.getLogger(__name__)


class MediaStorage:
    """Uploads data-URI media under users/{user_id}/... in a bucket."""

    def __init__(self, bucket):
        self.bucket = bucket

    def upload_data_uri(self, user_id: str, path: str, data_uri: str) -> str:
        """
        Upload a base64 data URI and return its public URL.

        Args:
            user_id: Owner of the media
            path: Path below the user's folder, e.g. "posts/<post_id>"
            data_uri: data:<mime>;base64,<data>
        """
        content_type, _ = split_data_uri(data_uri)
        blob = self.bucket.blob(f"users/{user_id}/{path}")
        blob.upload_from_string(decode_data_uri(data_uri), content_type=content_type)
        blob.make_public()
        return blob.public_url

    def delete(self, user_id: str, path: str) -> None:
        self.bucket.blob(f"users/{user_id}/{path}").delete()


def initialize_storage(settings: Optional[Settings] = None) -> MediaStorage:
    """Media storage on the Firebase app's default bucket."""
    app = initialize_firebase_app(settings)
    return MediaStorage(storage.bucket(app=app))
