"""
CRUD operations for a user's weekly menus (users/{user_id}/menus)
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.cloud.firestore_v1 import Query
from pydantic import ValidationError as PydanticValidationError

from chefai.db.models import DailyMealPlan, SavedWeeklyPlan, WeeklyMealPlan

logger = logging.getLogger(__name__)


def _normalize_lines(value: Any) -> List[str]:
    # Older menus stored ingredients and steps as one newline-joined string.
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [line for line in value.split("\n") if line.strip()]
    return []


def _normalize_meal(meal: Optional[Dict]) -> Dict:
    meal = meal or {}
    return {
        "name": meal.get("name") or "",
        "instructions": _normalize_lines(meal.get("instructions")),
        "ingredients": _normalize_lines(meal.get("ingredients")),
        "equipment": _normalize_lines(meal.get("equipment")),
        "benefits": meal.get("benefits") or None,
        "nutritionalTable": meal.get("nutritionalTable") or None,
    }


def normalize_menu_document(data: Dict) -> Dict:
    """Bring a stored menu into the current WeeklyMealPlan shape."""
    days = data.get("weeklyMealPlan")
    if not isinstance(days, list):
        days = []
    return {
        **data,
        "weeklyMealPlan": [
            {
                "day": day.get("day") or "",
                "breakfast": _normalize_meal(day.get("breakfast")),
                "lunch": _normalize_meal(day.get("lunch")),
                "comida": _normalize_meal(day.get("comida")),
                "dinner": _normalize_meal(day.get("dinner")),
            }
            for day in days
            if day
        ],
    }


class MenuCRUD:
    """CRUD operations for the menus subcollection."""

    USERS_COLLECTION = "users"
    MENUS_SUBCOLLECTION = "menus"

    def __init__(self, db):
        self.db = db

    def _collection(self, user_id: str):
        return (
            self.db.collection(self.USERS_COLLECTION)
            .document(user_id)
            .collection(self.MENUS_SUBCOLLECTION)
        )

    def create(
        self,
        user_id: str,
        plan: WeeklyMealPlan,
        ingredients: str = "",
        dietary_preferences: str = "",
        number_of_days: Optional[int] = None,
        number_of_people: int = 2,
    ) -> str:
        """
        Save a generated weekly plan with the preferences it was made from.

        Returns:
            ID of the new menu document
        """
        document = plan.model_dump(by_alias=True)
        document.update(
            {
                "ingredients": ingredients,
                "dietaryPreferences": dietary_preferences,
                "numberOfDays": number_of_days or len(plan.weekly_meal_plan),
                "numberOfPeople": number_of_people,
                "createdAt": datetime.now(timezone.utc),
            }
        )
        doc_ref = self._collection(user_id).document()
        doc_ref.set(document)
        return doc_ref.id

    def list_by_user(self, user_id: str, limit: int = 50) -> List[SavedWeeklyPlan]:
        """
        List a user's menus, newest first.

        Legacy documents are normalized; documents that still do not form a
        valid plan are skipped with a warning.
        """
        docs = (
            self._collection(user_id)
            .order_by("createdAt", direction=Query.DESCENDING)
            .limit(limit)
            .get()
        )
        menus = []
        for doc in docs:
            try:
                menus.append(SavedWeeklyPlan.model_validate({**normalize_menu_document(doc.to_dict()), "id": doc.id}))
            except PydanticValidationError as e:
                logger.warning("Skipping unreadable menu %s for user %s: %s", doc.id, user_id, e)
        return menus

    def update(self, user_id: str, menu_id: str, days: List[DailyMealPlan]) -> bool:
        """
        Replace the days of a saved menu.

        Returns:
            True if updated, False if not found
        """
        doc_ref = self._collection(user_id).document(menu_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.update({"weeklyMealPlan": [day.model_dump(by_alias=True) for day in days]})
        return True

    def delete(self, user_id: str, menu_id: str) -> bool:
        doc_ref = self._collection(user_id).document(menu_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True
