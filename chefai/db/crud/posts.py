"""
CRUD operations for community posts (published_recipes collection)
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from chefai.ai.errors import NotFoundError
from chefai.db.crud.users import UserCRUD
from chefai.db.models import PostType, PublishedPost, RecipeSpec, UserAccount, WeeklyMealPlan


class PostCRUD:
    """Create and read community feed posts."""

    COLLECTION = "published_recipes"

    def __init__(self, db, media_storage=None):
        self.db = db
        self.media_storage = media_storage
        self.users = UserCRUD(db)

    def _publisher(self, user_id: str) -> UserAccount:
        account = self.users.get(user_id)
        if account is None:
            raise NotFoundError(f"User profile not found: {user_id}")
        return account

    def _base_document(self, publisher: UserAccount) -> Dict[str, Any]:
        return {
            "publisherId": publisher.id,
            "publisherName": publisher.name,
            "publisherPhotoURL": publisher.photo_url,
            # Privacy and monetization are captured at the time of posting.
            "profileType": publisher.profile_type.value,
            "canMonetize": publisher.can_monetize,
            "likesCount": 0,
            "commentsCount": 0,
            "mentions": [],
            "createdAt": datetime.now(timezone.utc),
        }

    def create_recipe_post(
        self,
        user_id: str,
        recipe: RecipeSpec,
        media_data_uri: Optional[str] = None,
        media_type: str = "image",
    ) -> str:
        """
        Publish a recipe, uploading its media first when storage is configured.

        Args:
            user_id: Publisher user ID
            recipe: Recipe to publish
            media_data_uri: Optional image as a data URI

        Returns:
            ID of the new post

        Raises:
            NotFoundError if the publisher has no profile
        """
        publisher = self._publisher(user_id)
        doc_ref = self.db.collection(self.COLLECTION).document()

        media_url = None
        if media_data_uri:
            if self.media_storage is not None:
                media_url = self.media_storage.upload_data_uri(user_id, f"posts/{doc_ref.id}", media_data_uri)
            else:
                media_url = media_data_uri

        recipe_doc = recipe.to_document()
        document = self._base_document(publisher)
        document.update(
            {
                "type": PostType.RECIPE.value,
                "content": recipe_doc.pop("name"),
                **recipe_doc,
                "mediaUrl": media_url,
                "mediaType": media_type if media_url else None,
            }
        )

        try:
            doc_ref.set(document)
        except Exception:
            # Do not leave an orphaned upload behind a failed write.
            if media_url and self.media_storage is not None:
                self.media_storage.delete(user_id, f"posts/{doc_ref.id}")
            raise
        return doc_ref.id

    def create_menu_post(self, user_id: str, caption: str, plan: WeeklyMealPlan) -> str:
        """Publish a weekly plan with a caption. Returns the post ID."""
        publisher = self._publisher(user_id)
        document = self._base_document(publisher)
        document.update(
            {
                "type": PostType.MENU.value,
                "content": caption,
                "weeklyMealPlan": plan.model_dump(by_alias=True)["weeklyMealPlan"],
            }
        )
        doc_ref = self.db.collection(self.COLLECTION).document()
        doc_ref.set(document)
        return doc_ref.id

    def get(self, post_id: str) -> Optional[PublishedPost]:
        doc = self.db.collection(self.COLLECTION).document(post_id).get()
        if doc.exists:
            return PublishedPost.model_validate({**doc.to_dict(), "id": doc.id})
        return None
