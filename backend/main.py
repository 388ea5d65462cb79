"""FastAPI application entry point for the Dataset Cleaner API.

This module initializes the FastAPI application, configures logging and CORS
middleware, and mounts the API router.

To run locally:
    uvicorn main:app --reload
"""
from __future__ import annotations

from dotenv import load_dotenv
load_dotenv()  # Load .env file before other imports

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router as api_router
from config import settings
from utils.logging import setup_logging

setup_logging()

app = FastAPI(
    title="Dataset Cleaner",
    description="Natural-language CSV cleaning API",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/healthcheck")
async def healthcheck() -> dict:
    """Health check endpoint.

    Returns:
        Dict with status "ok" if the service is running.
    """
    return {"status": "ok"}
