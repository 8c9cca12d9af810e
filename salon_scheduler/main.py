import logging

from fastapi import FastAPI
from redis.exceptions import RedisError

from .redis_client import redis_client
from .routers import bookings, calendar, org_settings

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Salon Scheduler API")

app.include_router(bookings.router)
app.include_router(calendar.router)
app.include_router(org_settings.router)


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except RedisError:
        redis_ok = False
    return {"status": "ok", "redis": redis_ok}
