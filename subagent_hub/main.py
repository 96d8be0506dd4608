from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from subagent_hub.agents.router import router as agents_router
from subagent_hub.config import settings
from subagent_hub.database import check_health, close_database, init_database
from subagent_hub.exception_handlers import register_exception_handlers
from subagent_hub.importer.attribution import ImporterLocks
from subagent_hub.importer.router import router as importer_router
from subagent_hub.logging_config import setup_logging
from subagent_hub.rate_limit.store import InMemoryTTLStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_database()
    app.state.rate_limit_store = InMemoryTTLStore()
    app.state.importer_locks = ImporterLocks()
    yield
    await close_database()


app = FastAPI(
    title="Sub-agent Hub",
    description="Directory of reusable sub-agent definitions imported from GitHub",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(importer_router, prefix="/api/v1/github", tags=["github"])
app.include_router(agents_router, prefix="/api/v1/agents", tags=["agents"])


@app.get("/api/v1/health")
async def health():
    await check_health()
    return {"status": "healthy"}
