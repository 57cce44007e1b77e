import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .database import build_engine, create_tables
from .routes.cron import router as cron_router
from .services.slot_scheduler import build_slot_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    engine = build_engine()
    try:
        await create_tables(engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions with the worker
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another process)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    # The ARQ worker runs the startup pass and the recurring jobs; the API
    # only exposes manual triggers against the same database.
    app.state.slot_scheduler = build_slot_scheduler(engine)

    yield
    logger.info("Application shutting down...")
    await engine.dispose()


app = FastAPI(title="Clinic Slots API", version="1.0.0", lifespan=lifespan)

app.include_router(cron_router)


@app.get("/health")
def health():
    return {"status": "healthy"}
