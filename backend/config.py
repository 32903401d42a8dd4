"""
Central configuration for the event backend.
Values come from the environment (a local .env file is loaded once here).
"""

import os
from dotenv import load_dotenv

load_dotenv()

# PostgreSQL DSN, checked when a connection is opened
DATABASE_URL = os.getenv("DATABASE_URL")

# JWT signing secret, checked by the auth service at import time
JWT_SECRET = os.getenv("JWT_SECRET")
TOKEN_EXPIRATION_MINUTES = int(os.getenv("TOKEN_EXPIRATION_MINUTES", 1440))  # Default 24 hours

GATEWAY_PORT = int(os.getenv("GATEWAY_PORT", 5050))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://localhost:8080",
    ).split(",")
    if origin.strip()
]

DEFAULT_EVENT_IMAGE = "default-event.jpg"
DEFAULT_EVENT_CAPACITY = 100
