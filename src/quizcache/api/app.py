from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quizcache.api.dependencies import HandlerDep, UserIdDep, lifespan
from quizcache.config import settings
from quizcache.dto import (
    ExplainRequest,
    ExplanationResponse,
    GenerateQuizRequest,
    GenerateQuizResponse,
    HealthCheckResponse,
    HintRequest,
    HintResponse,
    ImproveCardRequest,
    ImproveCardResponse,
    UsageResponse,
)

app = FastAPI(
    title="Quiz Cache API",
    description="Cache-first, quota-aware AI generation for flashcards and quizzes",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Quiz Cache API",
        "version": "0.1.0",
        "description": "Cache-first, quota-aware AI generation for flashcards and quizzes",
        "endpoints": {
            "usage": "/ai/usage",
            "hint": "/ai/hint",
            "explain": "/ai/explain",
            "generate_quiz": "/ai/generate-quiz",
            "improve_card": "/ai/improve-card",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep) -> HealthCheckResponse:
    """Report cache tier and provider reachability."""
    return await handler.health()


@app.get("/ai/usage", response_model=UsageResponse)
async def usage(handler: HandlerDep, user_id: UserIdDep) -> UsageResponse:
    """Get the requesting user's token usage."""
    return await handler.usage(user_id)


@app.post("/ai/explain", response_model=ExplanationResponse)
async def explain(
    request: ExplainRequest, handler: HandlerDep, user_id: UserIdDep
) -> ExplanationResponse:
    """Explain why the correct answer is right."""
    return await handler.explain(request, user_id)


@app.post("/ai/hint", response_model=HintResponse)
async def hint(request: HintRequest, handler: HandlerDep, user_id: UserIdDep) -> HintResponse:
    """Generate a progressive hint (level 1-3)."""
    return await handler.hint(request, user_id)


@app.post("/ai/generate-quiz", response_model=GenerateQuizResponse)
async def generate_quiz(
    request: GenerateQuizRequest, handler: HandlerDep, user_id: UserIdDep
) -> GenerateQuizResponse:
    """Generate multiple choice quiz cards for a topic."""
    return await handler.generate_quiz(request, user_id)


@app.post("/ai/improve-card", response_model=ImproveCardResponse)
async def improve_card(
    request: ImproveCardRequest, handler: HandlerDep, user_id: UserIdDep
) -> ImproveCardResponse:
    """Improve a card's clarity, difficulty or accuracy."""
    return await handler.improve_card(request, user_id)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "quizcache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
