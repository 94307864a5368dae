from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shipit import __version__
from shipit.api.routes import advisors, agent, analyze, regenerate, reports
from shipit.config import settings
from shipit.errors import PersistenceError
from shipit.services import database as db
from shipit.services.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if db.db_available():
        try:
            await db.ensure_schema()
        except PersistenceError as e:
            logger.warning(f"Report store unavailable, continuing without it: {e}")
    yield
    # Shutdown
    await db.close_pool()


app = FastAPI(
    title="ShipIt",
    description="Startup idea validation: research, streamed report sections, targeted edits",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(analyze.router)
app.include_router(regenerate.router)
app.include_router(agent.router)
app.include_router(advisors.router)
app.include_router(reports.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "shipit"}
