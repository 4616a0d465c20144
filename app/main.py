import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.core.config import settings
from app.core.database import engine, AsyncSessionLocal
from app.core.data_access import DataAccess
from app.ai_feature.loop import ToolCallingLoop
from app.ai_feature.model import build_chat_model
from app.ai_feature.registry import build_registry
from app.ai_feature.service import ChatService
from app.api.router import api_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# Wire the chat stack once; close the pool when the app stops
@asynccontextmanager
async def lifespan(app: FastAPI):
    data_access = DataAccess(
        engine, AsyncSessionLocal, timeout=settings.TOOL_TIMEOUT_SECONDS
    )
    registry = build_registry(data_access)
    loop = ToolCallingLoop(
        build_chat_model(settings), registry, max_rounds=settings.MAX_TOOL_ROUNDS
    )

    app.state.data_access = data_access
    app.state.chat_service = ChatService(loop, chunk_size=settings.STREAM_CHUNK_SIZE)
    logger.info(f"Chat service ready with {len(registry)} tools")

    yield
    await engine.dispose()


app = FastAPI(title="Database Chat API", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Welcome to the Database Chat API"}
