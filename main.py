from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from core.config import CORS_ORIGINS, LOG_LEVEL, MQTT_ENABLED, PORT
from core.database import close_store, get_store
from core.errors import StoreError
from core.mqtt_client import connect_mqtt, disconnect_mqtt
from routes.root_route import router as root_router
from routes.health_routes import router as health_router
from routes.reading_routes import router as reading_router
from routes.device_routes import router as device_router
from routes.websocket_route import router as ws_router
import logging

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Airwise API", version="1.0.0")

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)


@app.on_event("startup")
async def startup():
    store = get_store()
    try:
        store.initialize()
    except StoreError as e:
        # The service cannot run without its store
        logger.critical(f"❌ Failed to connect to database: {e.message}")
        raise

    if MQTT_ENABLED:
        await connect_mqtt()


@app.on_event("shutdown")
async def shutdown():
    if MQTT_ENABLED:
        disconnect_mqtt()
    close_store()
    logger.info("Database connection closed.")

# Routers
app.include_router(root_router)
app.include_router(health_router)
app.include_router(reading_router)
app.include_router(device_router)
app.include_router(ws_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
