# barbershop/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from barbershop.config import settings
from barbershop.db import create_db_and_tables, engine
from barbershop.log import setup_logging
from barbershop.notifier import default_notifier
from barbershop.routers import appointments_routes, barbers_routes, reminders_routes
from barbershop.services.reminders import ReminderScheduler

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup - creating tables")
    create_db_and_tables(engine)

    scheduler = None
    if settings.ENABLE_REMINDER_SCHEDULER:
        scheduler = ReminderScheduler(engine, default_notifier)
        scheduler.start()
    app.state.reminder_scheduler = scheduler

    yield

    logger.info("Application shutdown")
    if scheduler is not None:
        await scheduler.stop()


app = FastAPI(title="Barbershop Booking API", lifespan=lifespan)

app.include_router(barbers_routes.router)
app.include_router(appointments_routes.router)
app.include_router(reminders_routes.router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
