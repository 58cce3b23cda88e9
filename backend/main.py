"""
Recipe Assistant Backend - FastAPI Application
Main entry point; a thin route layer over the LLM reliability core
"""

import logging
from typing import Literal, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config import CORS_ORIGINS, LLM_MODEL, setup_logging
from core.conversation import ChatOrchestrator, build_orchestrator
from core.fallback import create_fallback_recipe
from core.normalizer import normalize

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Initialize FastAPI app
app = FastAPI(
    title="Recipe Assistant API",
    description="AI Recipe Assistant Backend - rate-limited, cached LLM access with fallbacks",
    version=API_VERSION
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request Models
class HistoryMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    message: str
    conversation_history: list[HistoryMessage] = []
    preferences: Optional[dict] = None  # saved user preferences from the frontend


class ParseIntentRequest(BaseModel):
    userInput: str


class SuggestionsRequest(BaseModel):
    intent: dict = {}


class RecipeOptions(BaseModel):
    customizations: list[str] = []
    allergies: list[str] = []
    nutritionalTargets: Optional[dict] = None
    customOptions: Optional[dict] = None


class RecipeDetailsRequest(BaseModel):
    cuisine: str = "any"
    dish: str = Field(min_length=1)
    options: RecipeOptions = RecipeOptions()


class IngredientRecommendationsRequest(BaseModel):
    currentSelections: dict = {}
    categoryToRecommend: str = Field(min_length=1)


class ExtractRecipeRequest(BaseModel):
    text: str


class HealthResponse(BaseModel):
    status: str
    model: str
    cache_entries: int
    queue_depth: int


def get_orchestrator(request: Request) -> ChatOrchestrator:
    """The process-wide orchestrator built at startup"""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = request.app.state.orchestrator = build_orchestrator()
    return orchestrator


# API Endpoints
@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Recipe Assistant API is running", "version": API_VERSION, "model": LLM_MODEL}


@app.get("/health", response_model=HealthResponse)
async def health_check(orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Health check endpoint; never calls the provider"""
    return HealthResponse(
        status="healthy",
        model=LLM_MODEL,
        cache_entries=len(orchestrator.cache),
        queue_depth=orchestrator.dispatcher.pending,
    )


@app.post("/api/chat")
async def chat(request: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """
    Main chat endpoint. Always answers 200; provider trouble shows up as
    a fallback message with ``fallback: true``.
    """
    result = await orchestrator.process_culinary_chat(
        request.message,
        history=[turn.model_dump() for turn in request.conversation_history],
        preferences=request.preferences,
    )
    return result.to_dict()


@app.post("/api/parse-intent")
async def parse_intent(request: ParseIntentRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.parse_user_intent(request.userInput)


@app.post("/api/recipe-suggestions")
async def recipe_suggestions(request: SuggestionsRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.generate_recipe_suggestions(request.intent)


@app.post("/api/recipe-details")
async def recipe_details(request: RecipeDetailsRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    options = request.options
    recipe = await orchestrator.generate_recipe(
        request.cuisine,
        request.dish,
        customizations=options.customizations,
        allergies=options.allergies,
        nutritional_targets=options.nutritionalTargets,
        custom_options=options.customOptions,
    )
    return recipe.to_dict()


@app.post("/api/ingredient-recommendations")
async def ingredient_recommendations(
    request: IngredientRecommendationsRequest,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.get_ingredient_recommendations(
        request.currentSelections,
        request.categoryToRecommend,
    )


@app.post("/api/extract-recipe")
async def extract_recipe(request: ExtractRecipeRequest):
    """Scrape and normalize a recipe from displayed chat text (no LLM call)"""
    return normalize(None, text=request.text).to_dict()


@app.get("/api/fallback-recipe")
async def fallback_recipe(dish: str = "", cuisine: str = ""):
    return create_fallback_recipe(dish, cuisine).to_dict()


# Startup event
@app.on_event("startup")
async def startup_event():
    """Build the shared client, cache and dispatcher once per process"""
    setup_logging()
    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = build_orchestrator()
    logger.info("Recipe Assistant backend v%s started (model: %s)", API_VERSION, LLM_MODEL)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
