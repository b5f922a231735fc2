import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reviews_dashboard.config import settings
from reviews_dashboard.routers.health import router as health_router
from reviews_dashboard.routers.listings import router as listings_router
from reviews_dashboard.routers.reviews import router as reviews_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="API for normalizing, filtering and summarizing guest reviews across channels.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(reviews_router)
app.include_router(listings_router)
