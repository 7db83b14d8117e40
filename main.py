"""
FastAPI Application for ChefAI
Recipe, meal-plan and voice cooking-assistant APIs backed by Genkit and Firestore
"""
import logging
from functools import lru_cache
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field

from chefai import __version__
from chefai.ai.errors import EncodingError, GenerationError, GenerationErrorKind, NotFoundError, ValidationError
from chefai.ai.flows.cooking_assistant import CookingAssistantReply, run_cooking_assistant
from chefai.ai.flows.create_weekly_meal_plan import create_weekly_meal_plan
from chefai.ai.flows.generate_admin_post import GenerateAdminPostOutput, generate_admin_post
from chefai.ai.flows.generate_detailed_recipe import generate_detailed_recipe
from chefai.ai.flows.generate_recipe import generate_recipe
from chefai.ai.flows.generate_recipe_image import GenerateRecipeImageOutput, generate_recipe_image
from chefai.ai.flows.generate_shopping_list import collect_plan_ingredients, generate_shopping_list
from chefai.ai.flows.text_to_speech import GenerateSpokenInstructionsOutput, generate_spoken_instructions
from chefai.ai.genkit import create_backend
from chefai.ai.invoker import GenerationFlowInvoker
from chefai.config import get_settings
from chefai.db.crud import MenuCRUD, PostCRUD, RecipeCRUD
from chefai.db.firestore import initialize_firestore
from chefai.db.models import (
    ChefModel,
    ConversationTurn,
    DailyMealPlan,
    PublishedPost,
    RecipeSpec,
    SavedRecipe,
    SavedWeeklyPlan,
    ShoppingList,
    WeeklyMealPlan,
)
from chefai.db.storage import initialize_storage
from chefai.services.cooking_session import (
    CookingSession,
    CookingSessionState,
    InvalidTransitionError,
    SessionStore,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("chefai.api")

# Initialize FastAPI app
app = FastAPI(
    title="ChefAI API",
    description="AI-generated recipes, weekly meal plans and a voice cooking assistant",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependencies
@lru_cache
def get_invoker() -> GenerationFlowInvoker:
    return GenerationFlowInvoker(create_backend(settings))


@lru_cache
def get_db():
    return initialize_firestore(settings)


@lru_cache
def get_media_storage():
    if not settings.firebase_storage_bucket:
        return None
    return initialize_storage(settings)


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore()


def get_recipes(db=Depends(get_db)) -> RecipeCRUD:
    return RecipeCRUD(db)


def get_menus(db=Depends(get_db)) -> MenuCRUD:
    return MenuCRUD(db)


def get_posts(db=Depends(get_db), media_storage=Depends(get_media_storage)) -> PostCRUD:
    return PostCRUD(db, media_storage=media_storage)


# Error handling
GENERATION_STATUS = {
    GenerationErrorKind.BACKEND_REFUSED: 400,
    GenerationErrorKind.BACKEND_UNREACHABLE: 503,
}


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    logger.warning("Generation failed on %s: %r", request.url.path, exc)
    return JSONResponse(
        status_code=GENERATION_STATUS.get(exc.kind, 502),
        content={"detail": exc.message, "kind": exc.kind.value},
    )


@app.exception_handler(EncodingError)
async def encoding_error_handler(request: Request, exc: EncodingError):
    logger.error("Audio encoding failed on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=500, content={"detail": f"Could not produce audio: {exc.message}"})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"detail": str(exc), "phase": exc.phase.value})


# Request models for API endpoints
class GenerateRecipeRequest(ChefModel):
    """Request schema for generating a recipe from ingredients."""
    ingredients: str = Field(description="A comma-separated list of available ingredients")
    servings: int = Field(description="The number of servings (1-20)")
    language: str = Field(default="Spanish", description="Output language")
    cuisine: Optional[str] = Field(default=None, description="Preferred cuisine")


class GenerateDetailedRecipeRequest(ChefModel):
    """Request schema for expanding a recipe title into a full recipe."""
    recipe_name: str = Field(alias="recipeName", description="The recipe title")
    servings: int = Field(description="The number of servings (1-20)")
    context: Optional[str] = Field(default=None, description="Preferences or ingredients on hand")


class GenerateRecipeImageRequest(ChefModel):
    recipe_name: str = Field(alias="recipeName")


class CreateWeeklyMealPlanRequest(ChefModel):
    """Request schema for a weekly meal plan."""
    ingredients: str
    number_of_days: int = Field(default=7, alias="numberOfDays", description="Days to plan (1-7)")
    number_of_people: int = Field(default=2, alias="numberOfPeople")
    dietary_preferences: Optional[str] = Field(default=None, alias="dietaryPreferences")
    cuisine: Optional[str] = None


class GenerateShoppingListRequest(ChefModel):
    """Either the ingredient lines or a plan to collect them from."""
    all_ingredients: Optional[str] = Field(default=None, alias="allIngredients")
    weekly_meal_plan: Optional[WeeklyMealPlan] = Field(default=None, alias="plan")


class SpeechRequest(ChefModel):
    text: str


class CookingAssistantRequest(ChefModel):
    recipe: RecipeSpec
    history: List[ConversationTurn] = []
    user_query: str = Field(alias="userQuery")


class SaveRecipeRequest(ChefModel):
    recipe: RecipeSpec
    image_url: Optional[str] = Field(default=None, alias="imageUrl")


class SaveMenuRequest(ChefModel):
    plan: WeeklyMealPlan
    ingredients: str = ""
    dietary_preferences: str = Field(default="", alias="dietaryPreferences")
    number_of_people: int = Field(default=2, alias="numberOfPeople")


class UpdateMenuRequest(ChefModel):
    weekly_meal_plan: List[DailyMealPlan] = Field(alias="weeklyMealPlan")


class PublishMenuRequest(ChefModel):
    caption: str = ""
    plan: WeeklyMealPlan


class AdminPostRequest(ChefModel):
    topic: str


class StartSessionRequest(ChefModel):
    recipe: RecipeSpec


class AskRequest(ChefModel):
    user_query: str = Field(alias="userQuery")


class CreatedResponse(ChefModel):
    id: str


class SessionResponse(ChefModel):
    """Cooking session snapshot plus the step the user is on."""
    session_id: str = Field(alias="sessionId")
    current_step: Optional[str] = Field(default=None, alias="currentStep")
    state: CookingSessionState


def _session_response(session: CookingSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        current_step=session.state.current_step,
        state=session.state,
    )


def _require_session(session_id: str, store: SessionStore) -> CookingSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Cooking session not found: {session_id}")
    return session


# Health check endpoints
@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "healthy", "service": "ChefAI API", "version": __version__}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Generation Endpoints
@app.post(
    "/api/recipes/generate",
    response_model=RecipeSpec,
    summary="Generate Recipe",
    description="Create a new recipe from the ingredients on hand",
)
async def api_generate_recipe(
    input_data: GenerateRecipeRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
) -> RecipeSpec:
    return await generate_recipe(
        invoker,
        ingredients=input_data.ingredients,
        servings=input_data.servings,
        language=input_data.language,
        cuisine=input_data.cuisine,
    )


@app.post("/api/recipes/detailed", response_model=RecipeSpec, summary="Generate Detailed Recipe")
async def api_generate_detailed_recipe(
    input_data: GenerateDetailedRecipeRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
) -> RecipeSpec:
    return await generate_detailed_recipe(
        invoker,
        recipe_name=input_data.recipe_name,
        servings=input_data.servings,
        context=input_data.context,
    )


@app.post("/api/recipes/image", response_model=GenerateRecipeImageOutput, summary="Generate Recipe Image")
async def api_generate_recipe_image(
    input_data: GenerateRecipeImageRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
) -> GenerateRecipeImageOutput:
    return await generate_recipe_image(invoker, recipe_name=input_data.recipe_name)


@app.post("/api/meal-plans/generate", response_model=WeeklyMealPlan, summary="Create Weekly Meal Plan")
async def api_create_weekly_meal_plan(
    input_data: CreateWeeklyMealPlanRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
) -> WeeklyMealPlan:
    return await create_weekly_meal_plan(
        invoker,
        ingredients=input_data.ingredients,
        number_of_days=input_data.number_of_days,
        number_of_people=input_data.number_of_people,
        dietary_preferences=input_data.dietary_preferences,
        cuisine=input_data.cuisine,
    )


@app.post("/api/shopping-list/generate", response_model=ShoppingList, summary="Generate Shopping List")
async def api_generate_shopping_list(
    input_data: GenerateShoppingListRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
) -> ShoppingList:
    """
    Build a categorised shopping list.

    Args:
        input_data: allIngredients (one per line), or a plan whose meal
            ingredients are collected
    """
    all_ingredients = input_data.all_ingredients
    if not all_ingredients and input_data.weekly_meal_plan is not None:
        all_ingredients = collect_plan_ingredients(input_data.weekly_meal_plan)
    return await generate_shopping_list(invoker, all_ingredients=all_ingredients or "")


@app.post("/api/speech", response_model=GenerateSpokenInstructionsOutput, summary="Text To Speech")
async def api_text_to_speech(
    input_data: SpeechRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
) -> GenerateSpokenInstructionsOutput:
    audio = await generate_spoken_instructions(invoker, input_data.text)
    return GenerateSpokenInstructionsOutput(audio_data_uri=audio.data_uri)


@app.post(
    "/api/cooking-assistant",
    response_model=CookingAssistantReply,
    response_model_exclude_none=True,
    summary="Cooking Assistant",
    description="Answer a question about the recipe being cooked, with spoken audio when available",
)
async def api_cooking_assistant(
    input_data: CookingAssistantRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
) -> CookingAssistantReply:
    return await run_cooking_assistant(
        invoker,
        recipe=input_data.recipe,
        history=input_data.history,
        user_query=input_data.user_query,
    )


# Saved Recipe Endpoints
@app.post("/api/users/{user_id}/recipes", response_model=CreatedResponse, status_code=201)
async def api_save_recipe(user_id: str, input_data: SaveRecipeRequest, recipes: RecipeCRUD = Depends(get_recipes)):
    return CreatedResponse(id=recipes.create(user_id, input_data.recipe, image_url=input_data.image_url))


@app.get("/api/users/{user_id}/recipes", response_model=List[SavedRecipe])
async def api_list_recipes(user_id: str, recipes: RecipeCRUD = Depends(get_recipes)):
    return recipes.list_by_user(user_id)


@app.get("/api/users/{user_id}/recipes/{recipe_id}", response_model=SavedRecipe)
async def api_get_recipe(user_id: str, recipe_id: str, recipes: RecipeCRUD = Depends(get_recipes)):
    recipe = recipes.get(user_id, recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail=f"Recipe not found: {recipe_id}")
    return recipe


@app.delete("/api/users/{user_id}/recipes/{recipe_id}", status_code=204)
async def api_delete_recipe(user_id: str, recipe_id: str, recipes: RecipeCRUD = Depends(get_recipes)):
    if not recipes.delete(user_id, recipe_id):
        raise HTTPException(status_code=404, detail=f"Recipe not found: {recipe_id}")


# Saved Menu Endpoints
@app.post("/api/users/{user_id}/menus", response_model=CreatedResponse, status_code=201)
async def api_save_menu(user_id: str, input_data: SaveMenuRequest, menus: MenuCRUD = Depends(get_menus)):
    menu_id = menus.create(
        user_id,
        input_data.plan,
        ingredients=input_data.ingredients,
        dietary_preferences=input_data.dietary_preferences,
        number_of_people=input_data.number_of_people,
    )
    return CreatedResponse(id=menu_id)


@app.get("/api/users/{user_id}/menus", response_model=List[SavedWeeklyPlan])
async def api_list_menus(user_id: str, menus: MenuCRUD = Depends(get_menus)):
    return menus.list_by_user(user_id)


@app.put("/api/users/{user_id}/menus/{menu_id}", status_code=204)
async def api_update_menu(
    user_id: str, menu_id: str, input_data: UpdateMenuRequest, menus: MenuCRUD = Depends(get_menus)
):
    if not menus.update(user_id, menu_id, input_data.weekly_meal_plan):
        raise HTTPException(status_code=404, detail=f"Menu not found: {menu_id}")


@app.delete("/api/users/{user_id}/menus/{menu_id}", status_code=204)
async def api_delete_menu(user_id: str, menu_id: str, menus: MenuCRUD = Depends(get_menus)):
    if not menus.delete(user_id, menu_id):
        raise HTTPException(status_code=404, detail=f"Menu not found: {menu_id}")


# Community Post Endpoints
@app.post("/api/users/{user_id}/posts/menu", response_model=CreatedResponse, status_code=201)
async def api_publish_menu(user_id: str, input_data: PublishMenuRequest, posts: PostCRUD = Depends(get_posts)):
    return CreatedResponse(id=posts.create_menu_post(user_id, input_data.caption, input_data.plan))


@app.get("/api/posts/{post_id}", response_model=PublishedPost)
async def api_get_post(post_id: str, posts: PostCRUD = Depends(get_posts)):
    post = posts.get(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail=f"Post not found: {post_id}")
    return post


@app.post(
    "/api/admin/posts",
    response_model=GenerateAdminPostOutput,
    status_code=201,
    summary="Generate Admin Post",
    description="Generate a recipe and its photo for a topic and publish them from the official account",
)
async def api_generate_admin_post(
    input_data: AdminPostRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
    posts: PostCRUD = Depends(get_posts),
) -> GenerateAdminPostOutput:
    return await generate_admin_post(
        invoker,
        posts,
        topic=input_data.topic,
        official_account_uid=settings.official_account_uid,
    )


# Cooking Session Endpoints
@app.post("/api/cooking-sessions", response_model=SessionResponse, status_code=201)
async def api_start_session(
    input_data: StartSessionRequest,
    invoker: GenerationFlowInvoker = Depends(get_invoker),
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Open a cooking session and narrate the first step."""
    session = store.open(invoker)
    await session.start(input_data.recipe)
    return _session_response(session)


@app.get("/api/cooking-sessions/{session_id}", response_model=SessionResponse)
async def api_get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _session_response(_require_session(session_id, store))


@app.post("/api/cooking-sessions/{session_id}/next", response_model=SessionResponse)
async def api_next_step(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Advance one step. A session that reaches the end is removed from the store."""
    session = _require_session(session_id, store)
    await session.next()
    response = _session_response(session)
    store.release_if_finished(session_id)
    return response


@app.post("/api/cooking-sessions/{session_id}/previous", response_model=SessionResponse)
async def api_previous_step(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _require_session(session_id, store)
    await session.previous()
    return _session_response(session)


@app.post("/api/cooking-sessions/{session_id}/repeat", response_model=SessionResponse)
async def api_repeat_step(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _require_session(session_id, store)
    await session.repeat()
    return _session_response(session)


@app.post(
    "/api/cooking-sessions/{session_id}/ask",
    response_model=CookingAssistantReply,
    response_model_exclude_none=True,
)
async def api_ask(session_id: str, input_data: AskRequest, store: SessionStore = Depends(get_session_store)):
    session = _require_session(session_id, store)
    return await session.ask(input_data.user_query)


@app.delete("/api/cooking-sessions/{session_id}", status_code=204)
async def api_close_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    if not store.close(session_id):
        raise HTTPException(status_code=404, detail=f"Cooking session not found: {session_id}")


# Run the application
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,  # Enable auto-reload during development
        log_level=settings.log_level.lower(),
    )
