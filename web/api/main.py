"""FastAPI bracket API - teams, tournaments and live bracket play."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from tourney.models.base import init_db
from tourney.services.tournament_service import TournamentLocks

from web.api.routes import router as api_router

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("tourney")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Database ready (%s), default seeding: %s", config.DATABASE_URL.split("://")[0], config.SEEDING_STRATEGY)
    yield


app = FastAPI(title="Tourney Bracket API", lifespan=lifespan)
# Serializes bracket mutations per tournament (single process)
app.state.tournament_locks = TournamentLocks()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Tourney Bracket API is running"}


@app.get("/api/health")
async def health():
    return {"status": "ok"}
