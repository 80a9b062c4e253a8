"""Configuration for the tourney bracket service."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'tourney.db'}",
)

# Default seeding for new tournaments: "weighted" (professional, by team weight) or "random"
SEEDING_STRATEGY = os.getenv("SEEDING_STRATEGY", "weighted").strip().lower()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _parse_origins(value: str) -> list[str]:
    if not value:
        return ["*"]
    return [x.strip() for x in value.split(",") if x.strip()] or ["*"]


CORS_ORIGINS = _parse_origins(os.getenv("CORS_ORIGINS", "*"))

# Web server
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
