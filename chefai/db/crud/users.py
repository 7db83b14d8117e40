"""
Read access to user profiles (users collection)
"""
from typing import Optional

from chefai.db.models import UserAccount


class UserCRUD:
    """Profile lookups needed by the publishing flows."""

    COLLECTION = "users"

    def __init__(self, db):
        self.db = db

    def get(self, user_id: str) -> Optional[UserAccount]:
        """
        Get a user profile by ID.

        Returns:
            UserAccount if found, None otherwise
        """
        doc = self.db.collection(self.COLLECTION).document(user_id).get()
        if doc.exists:
            return UserAccount.model_validate({**doc.to_dict(), "id": doc.id})
        return None
