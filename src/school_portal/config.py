"""Configuration module for the School Portal identity service.

This module provides centralized configuration management, including directory
paths, API server settings, session token settings and the endpoints of the
external identity directory. All configuration values can be overridden via
environment variables.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = ROOT_DIR / DATA_DIR_NAME

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "5000"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Record Store Configuration ---

DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR}/school_portal.db"
)

# Upper bound (seconds) for any call to the identity directory or the record
# store. A call that exceeds it is treated as a failure.
EXTERNAL_CALL_TIMEOUT_SECONDS: float = float(
    os.getenv("EXTERNAL_CALL_TIMEOUT_SECONDS", "10")
)

# --- Identity Directory Configuration ---

# Base URL of the Supabase project. When unset, an in-process directory is used
# (suitable for local development only).
IDENTITY_DIRECTORY_URL: Optional[str] = os.getenv("IDENTITY_DIRECTORY_URL")
IDENTITY_DIRECTORY_SERVICE_KEY: Optional[str] = os.getenv(
    "IDENTITY_DIRECTORY_SERVICE_KEY"
)

# --- Authentication Configuration ---

SESSION_SECRET_KEY: str = os.getenv(
    "SESSION_SECRET_KEY", "your-secret-key-change-in-production"
)
SESSION_ALGORITHM: str = os.getenv("SESSION_ALGORITHM", "HS256")
SESSION_TOKEN_TTL_MINUTES: int = int(
    os.getenv("SESSION_TOKEN_TTL_MINUTES", str(60 * 24 * 7))  # 7 days
)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# How many usernames to try before a registration fails on collisions
MAX_USERNAME_ATTEMPTS: int = int(os.getenv("MAX_USERNAME_ATTEMPTS", "5"))

# Admin token for creating primary controllers (set via ADMIN_TOKEN)
ADMIN_TOKEN: Optional[str] = os.getenv("ADMIN_TOKEN")

# --- School Configuration ---

SCHOOL_NAME: str = os.getenv("SCHOOL_NAME", "FG School")
