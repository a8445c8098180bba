from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from inkwell.config import settings

def setup_cors(app: FastAPI):
    """Configure CORS for the admin frontend"""
    origins = [settings.frontend_url]
    if settings.environment == "development":
        origins.append("http://localhost:3000")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(dict.fromkeys(origins)),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
