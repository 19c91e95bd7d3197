from fastapi import APIRouter
from prepx.api.v1.endpoints import (
    auth,
    health,
    subscriptions,
    entitlements,
    referrals,
    bookmarks,
    assistant,
    questions,
    difficulty,
    practice,
    predictor,
    ethics,
    social,
    community,
    voice,
    documentary,
)

api_router = APIRouter()

# Deep health checks (use /health/ready for the load balancer)
api_router.include_router(health.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "prepx-backend"}


api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

# Billing
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["Subscriptions"])
api_router.include_router(entitlements.router, prefix="/entitlements", tags=["Entitlements"])
api_router.include_router(referrals.router, prefix="/referrals", tags=["Referrals"])

# Study tools
api_router.include_router(bookmarks.router, prefix="/bookmarks", tags=["Bookmarks"])
api_router.include_router(assistant.router, prefix="/assistant", tags=["Teaching Assistant"])
api_router.include_router(questions.router, prefix="/questions", tags=["Question Generator"])
api_router.include_router(difficulty.router, prefix="/difficulty", tags=["Adaptive Difficulty"])
api_router.include_router(practice.router, prefix="/practice", tags=["Practice Sessions"])
api_router.include_router(predictor.router, prefix="/predictor", tags=["Topic Predictor"])
api_router.include_router(ethics.router, prefix="/ethics", tags=["Ethics Simulator"])

# Community and media
api_router.include_router(community.router, prefix="/community", tags=["Community"])
api_router.include_router(voice.router, prefix="/voice", tags=["Voice"])
api_router.include_router(documentary.router, prefix="/weekly-documentary", tags=["Weekly Documentary"])

# Admin content team
api_router.include_router(social.router, prefix="/social", tags=["Social Publisher"])
