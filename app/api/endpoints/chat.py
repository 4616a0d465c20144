import logging
from typing import Annotated, AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from app.ai_feature.errors import ModelProviderError
from app.ai_feature.service import ChatService
from app.ai_feature.streaming import SSE_HEADERS, StreamEvent, encode_event
from app.core import schemas
from app.core.data_access import DataAccess

router = APIRouter(prefix="/chat", tags=["Chat"])


# Both are built once in the app lifespan and shared by every request
def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_data_access(request: Request) -> DataAccess:
    return request.app.state.data_access


chat_dep = Annotated[ChatService, Depends(get_chat_service)]
data_dep = Annotated[DataAccess, Depends(get_data_access)]


@router.get("/health", response_model=schemas.HealthResponse)
async def health_check(data_access: data_dep):
    """Report whether the database answers."""
    connected = await data_access.ping()
    return schemas.HealthResponse(
        database=(
            schemas.DatabaseStatus.CONNECTED
            if connected
            else schemas.DatabaseStatus.DISCONNECTED
        )
    )


@router.post(
    "",
    response_model=schemas.ChatResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def chat(payload: schemas.ChatRequest, service: chat_dep):
    """Answer a message (with optional history) in one response."""
    try:
        outcome = await service.chat(payload.message, payload.history)
    except ModelProviderError as error:
        logging.error(f"Model call failed: {error}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to generate a response",
        )
    except Exception as error:
        logging.error(f"Chat failed: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process the chat message",
        )

    return schemas.ChatResponse(response=outcome.response, follow_up=outcome.follow_up)


@router.post("/stream")
async def stream_chat(payload: schemas.ChatRequest, request: Request, service: chat_dep):
    """
    Answer a message as Server-Sent Events:
    content..., complete, done (or error, done).
    """

    events = service.stream_chat(payload.message, payload.history)
    return StreamingResponse(event_source(request, events), headers=SSE_HEADERS)


async def event_source(request: Request, events: AsyncIterator[StreamEvent]):
    """Frame events for the wire until the client goes away."""
    async for event in events:
        if await request.is_disconnected():
            logging.info("Client disconnected, dropping the rest of the stream")
            break
        yield encode_event(event)
