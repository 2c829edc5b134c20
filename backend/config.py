"""
Configuration constants and environment setup.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# --- Database ---

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///study_planner.db")
DATABASE_ECHO = os.environ.get("DATABASE_ECHO", "false").lower() == "true"

# --- Auth ---

JWT_SECRET = os.environ.get("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.environ.get("JWT_EXPIRES_MINUTES", str(7 * 24 * 60)))
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "10"))

# --- API ---

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "5000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")

# --- Logging ---

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "text").lower()  # "text" or "json"

# --- Pomodoro defaults (minutes) ---

POMODORO_WORK_MINUTES = int(os.environ.get("POMODORO_WORK_MINUTES", "25"))
POMODORO_BREAK_MINUTES = int(os.environ.get("POMODORO_BREAK_MINUTES", "5"))

# --- Demo account (seed.py) ---

DEMO_EMAIL = "demo@studyplanner.com"
DEMO_PASSWORD = "password123"
