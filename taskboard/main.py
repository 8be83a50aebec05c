import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskboard.config import CORS_ORIGINS, LOG_LEVEL, MONGODB_DB, PORT, SERIALIZE_WRITES
from taskboard.db.mongo import MongoEntityStore, connect
from taskboard.routes import tasks, users
from taskboard.routes.resp import register_error_handlers
from taskboard.services.locks import KeyedLocks

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = connect()
    store = MongoEntityStore.from_client(client, MONGODB_DB)
    await store.ensure_indexes()
    app.state.store = store
    app.state.locks = KeyedLocks(enabled=SERIALIZE_WRITES)
    logger.info("MongoDB connected (db=%s)", MONGODB_DB)
    try:
        yield
    finally:
        client.close()
        logger.info("MongoDB connection closed")


app = FastAPI(title="Taskboard API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "PUT", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Register routers
app.include_router(users.router)
app.include_router(tasks.router)


@app.get("/api")
async def health():
    return {"message": "OK", "data": "API is up"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("taskboard.main:app", host="0.0.0.0", port=PORT)
