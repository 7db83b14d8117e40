"""
Pydantic models shared by the generation flows, the cooking session and the
Firestore collections.

Field names are snake_case in Python; documents and API payloads use the
camelCase aliases so stored recipes keep the shape the web client expects.
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

WAV_MIME_TYPE = "audio/wav"

NonEmptyStr = Annotated[str, Field(min_length=1)]


class ChefModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""
    model_config = ConfigDict(populate_by_name=True)


# Recipe Models
class NutritionalInfo(ChefModel):
    """Estimated nutritional values per serving."""
    calories: str = Field(..., min_length=1, description="Estimated calories per serving")
    protein: str = Field(..., min_length=1, description="Estimated protein in grams per serving")
    carbs: str = Field(..., min_length=1, description="Estimated carbohydrates in grams per serving")
    fats: str = Field(..., min_length=1, description="Estimated fats in grams per serving")


class RecipeSpec(ChefModel):
    """A generated recipe. Immutable once returned by a flow."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., min_length=1, description="The name of the recipe")
    instructions: List[NonEmptyStr] = Field(
        ..., min_length=1, description="Numbered preparation steps, one per string"
    )
    ingredients: List[NonEmptyStr] = Field(
        ..., min_length=1, description="Required ingredients with their quantities"
    )
    equipment: List[str] = Field(default=[], description="Needed kitchen equipment")
    benefits: Optional[str] = Field(None, description="Nutritional or health benefits")
    nutritional_table: Optional[NutritionalInfo] = Field(
        None, alias="nutritionalTable", description="Estimated nutritional table per serving"
    )

    def to_document(self) -> Dict:
        """Document body stored verbatim by the persistence gateway."""
        return self.model_dump(by_alias=True)


class SavedRecipe(RecipeSpec):
    """Recipe read back from a user's collection."""
    id: str = Field(..., description="Recipe document ID")
    image_url: Optional[str] = Field(None, alias="imageUrl")


# Meal Plan Models
class DailyMealPlan(ChefModel):
    """Breakfast, light lunch, main meal and dinner for one day."""
    day: str = Field(..., description='Day label, e.g. "Día 1"')
    breakfast: RecipeSpec
    lunch: RecipeSpec
    comida: RecipeSpec
    dinner: RecipeSpec

    def meals(self) -> List[RecipeSpec]:
        return [self.breakfast, self.lunch, self.comida, self.dinner]


class WeeklyMealPlan(ChefModel):
    """A multi-day meal plan."""
    weekly_meal_plan: List[DailyMealPlan] = Field(..., min_length=1, alias="weeklyMealPlan")

    def as_mapping(self) -> Dict[str, DailyMealPlan]:
        """Plan keyed by day label ("Día 1" .. "Día 7")."""
        return {day.day: day for day in self.weekly_meal_plan}


class SavedWeeklyPlan(WeeklyMealPlan):
    """Weekly plan read back from a user's menus collection."""
    id: str = Field(..., description="Menu document ID")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    ingredients: str = ""
    dietary_preferences: str = Field("", alias="dietaryPreferences")
    number_of_days: int = Field(7, alias="numberOfDays")
    number_of_people: int = Field(2, alias="numberOfPeople")


# Shopping List Models
class ShoppingListCategory(ChefModel):
    category: str = Field(..., min_length=1, description='Store section, e.g. "Frutas y Verduras"')
    items: List[str] = Field(default=[], description="Ingredients in this section")


class ShoppingList(ChefModel):
    shopping_list: List[ShoppingListCategory] = Field(..., alias="shoppingList")


# Conversation Models
class ConversationTurn(ChefModel):
    """One message of a cooking-assistant dialog."""
    role: Literal["user", "model"]
    content: str


# Audio Models
class AudioPayload(ChefModel):
    """A playable WAVE file, base64-encoded for transport."""
    mime_type: Literal["audio/wav"] = Field(WAV_MIME_TYPE, alias="mimeType")
    base64_data: str = Field(..., alias="base64Data")

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64_data}"


# User and Post Models
class ProfileType(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class UserAccount(ChefModel):
    """Public profile fields read from the users collection."""
    id: str
    name: str = ""
    username: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")
    profile_type: ProfileType = Field(ProfileType.PUBLIC, alias="profileType")
    can_monetize: bool = Field(False, alias="canMonetize")


class PostType(str, Enum):
    RECIPE = "recipe"
    MENU = "menu"
    TEXT = "text"


class PublishedPost(ChefModel):
    """A community feed post in the published_recipes collection."""
    id: str
    publisher_id: str = Field(..., alias="publisherId")
    publisher_name: str = Field("", alias="publisherName")
    publisher_photo_url: Optional[str] = Field(None, alias="publisherPhotoURL")
    type: PostType = PostType.RECIPE
    profile_type: ProfileType = Field(ProfileType.PUBLIC, alias="profileType")
    can_monetize: bool = Field(False, alias="canMonetize")
    content: str = ""
    instructions: List[str] = []
    ingredients: List[str] = []
    equipment: List[str] = []
    benefits: Optional[str] = None
    nutritional_table: Optional[NutritionalInfo] = Field(None, alias="nutritionalTable")
    weekly_meal_plan: Optional[List[DailyMealPlan]] = Field(None, alias="weeklyMealPlan")
    media_url: Optional[str] = Field(None, alias="mediaUrl")
    media_type: Optional[str] = Field(None, alias="mediaType")
    likes_count: int = Field(0, alias="likesCount")
    comments_count: int = Field(0, alias="commentsCount")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
