import logging

from fastapi import FastAPI

from .redis_client import redis_client
from .responses import capacity_error_handler
from .routers import appointments, capacity, settings
from .services.capacity import CapacityError

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Salon Capacity API")

app.add_exception_handler(CapacityError, capacity_error_handler)

app.include_router(appointments.router)
app.include_router(capacity.router)
app.include_router(settings.router)


@app.get("/health")
def health():
    return {"redis": redis_client.ping() if redis_client is not None else None}
