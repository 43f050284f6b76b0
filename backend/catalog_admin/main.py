from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from .config import settings
from .cron import CronManager
from .db.database import init_db
from .logger import logger
from .routers import cron


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up and initializing the database...")
    await init_db()

    cron_manager = CronManager()
    await cron_manager.initialize(autostart=settings.cron.autostart)
    app.state.cron_manager = cron_manager
    logger.info("Startup complete.")

    yield

    await cron_manager.shutdown()
    logger.info("Shutdown complete.")


app = FastAPI(lifespan=lifespan, title="Catalog Admin")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cron.router, prefix="/api")
