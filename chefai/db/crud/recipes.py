"""
CRUD operations for a user's saved recipes (users/{user_id}/recipes)
"""
from datetime import datetime, timezone
from typing import List, Optional

from google.cloud.firestore_v1 import Query

from chefai.db.models import RecipeSpec, SavedRecipe


class RecipeCRUD:
    """CRUD operations for the recipes subcollection."""

    USERS_COLLECTION = "users"
    RECIPES_SUBCOLLECTION = "recipes"

    def __init__(self, db):
        self.db = db

    def _collection(self, user_id: str):
        return (
            self.db.collection(self.USERS_COLLECTION)
            .document(user_id)
            .collection(self.RECIPES_SUBCOLLECTION)
        )

    def create(self, user_id: str, recipe: RecipeSpec, image_url: Optional[str] = None) -> str:
        """
        Save a generated recipe verbatim.

        Args:
            user_id: User ID
            recipe: Recipe returned by a generation flow
            image_url: Optional image URL for the recipe

        Returns:
            ID of the new recipe document
        """
        document = recipe.to_document()
        document["imageUrl"] = image_url
        document["createdAt"] = datetime.now(timezone.utc)

        doc_ref = self._collection(user_id).document()
        doc_ref.set(document)
        return doc_ref.id

    def get(self, user_id: str, recipe_id: str) -> Optional[SavedRecipe]:
        doc = self._collection(user_id).document(recipe_id).get()
        if doc.exists:
            return SavedRecipe.model_validate({**doc.to_dict(), "id": doc.id})
        return None

    def list_by_user(self, user_id: str, limit: int = 100) -> List[SavedRecipe]:
        """
        List a user's recipes, newest first.

        Args:
            user_id: User ID
            limit: Maximum number of recipes to return

        Returns:
            List of saved recipes
        """
        docs = (
            self._collection(user_id)
            .order_by("createdAt", direction=Query.DESCENDING)
            .limit(limit)
            .get()
        )
        return [SavedRecipe.model_validate({**doc.to_dict(), "id": doc.id}) for doc in docs]

    def delete(self, user_id: str, recipe_id: str) -> bool:
        """
        Delete a recipe.

        Returns:
            True if deleted, False if not found
        """
        doc_ref = self._collection(user_id).document(recipe_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True
