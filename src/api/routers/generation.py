"""Generation and authoring endpoints"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from opentelemetry import trace

from ..dependencies import get_authoring_service
from ..middleware.telemetry import tag_generation_request
from ...models.generation import (
    AUTO,
    ApiKeyTestResult,
    BrainstormResult,
    GenerationRequest,
    GenerationResult,
)
from ...services.authoring_service import AuthoringService


router = APIRouter(tags=["generation"])
tracer = trace.get_tracer(__name__)

DISCONNECT_POLL_SECONDS = 0.5


class ProviderSelection(BaseModel):
    """Provider, model and key shared by the authoring requests"""
    provider: str = Field(default=AUTO, description="Provider id or 'auto'")
    model: str = Field(default=AUTO, description="Model id or 'auto'")
    api_key: str = Field(default="", description="Optional caller-supplied API key")


class BrainstormRequest(ProviderSelection):
    topic: str = Field(..., min_length=1)


class ApiKeyTestRequest(BaseModel):
    provider: str
    api_key: str


class OutlineImproveRequest(ProviderSelection):
    outline: str = Field(..., min_length=1)


class ChapterRequest(ProviderSelection):
    chapter_title: str = Field(..., min_length=1)
    chapter_number: int = Field(..., ge=1)
    outline: str = ""
    tone: str = "auto"
    audience: str = "general readers"
    word_count: int = Field(default=2000, ge=100, le=20000)


class EbookRequest(ProviderSelection):
    topic: str = Field(..., min_length=1)
    word_count: int = Field(default=5000, ge=500, le=100000)
    tone: str = "auto"
    custom_tone: Optional[str] = None
    audience: str = "general readers"
    outline: Optional[str] = None


class HumanizeRequest(ProviderSelection):
    content: str = Field(..., min_length=1)


class TextResponse(BaseModel):
    content: str


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event):
    while not cancel_event.is_set():
        if await request.is_disconnected():
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@asynccontextmanager
async def cancel_on_disconnect(request: Request):
    """Yield an Event that is set if the client goes away"""
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        yield cancel_event
    finally:
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)


@router.post("/generate", response_model=GenerationResult)
async def generate(
    body: GenerationRequest,
    request: Request,
    service: AuthoringService = Depends(get_authoring_service)
):
    """Generate content with retry and provider fallback"""
    with tracer.start_as_current_span("api.generate") as span:
        span.set_attribute("generation.requested_provider", body.provider_id)
        tag_generation_request(request, body.provider_id, body.model)
        async with cancel_on_disconnect(request) as cancel_event:
            return await service.generate_content(body, cancel_event=cancel_event)


@router.post("/brainstorm", response_model=BrainstormResult)
async def brainstorm(
    body: BrainstormRequest,
    request: Request,
    service: AuthoringService = Depends(get_authoring_service)
):
    tag_generation_request(request, body.provider, body.model)
    async with cancel_on_disconnect(request) as cancel_event:
        return await service.brainstorm(
            body.topic, body.provider, body.model, body.api_key, cancel_event=cancel_event
        )


@router.post("/keys/test", response_model=ApiKeyTestResult)
async def test_api_key(
    body: ApiKeyTestRequest,
    request: Request,
    service: AuthoringService = Depends(get_authoring_service)
):
    """Check a key's format and make a minimal live request"""
    tag_generation_request(request, body.provider, AUTO)
    async with cancel_on_disconnect(request) as cancel_event:
        return await service.test_api_key(body.provider, body.api_key, cancel_event=cancel_event)


@router.post("/outline/improve", response_model=TextResponse)
async def improve_outline(
    body: OutlineImproveRequest,
    request: Request,
    service: AuthoringService = Depends(get_authoring_service)
):
    tag_generation_request(request, body.provider, body.model)
    async with cancel_on_disconnect(request) as cancel_event:
        content = await service.improve_outline(
            body.outline, body.provider, body.model, body.api_key, cancel_event=cancel_event
        )
    return TextResponse(content=content)


@router.post("/chapters/generate", response_model=TextResponse)
async def generate_chapter(
    body: ChapterRequest,
    request: Request,
    service: AuthoringService = Depends(get_authoring_service)
):
    tag_generation_request(request, body.provider, body.model)
    async with cancel_on_disconnect(request) as cancel_event:
        content = await service.generate_chapter(
            title=body.chapter_title,
            number=body.chapter_number,
            outline=body.outline,
            tone=body.tone,
            audience=body.audience,
            word_count=body.word_count,
            provider=body.provider,
            model=body.model,
            api_key=body.api_key,
            cancel_event=cancel_event,
        )
    return TextResponse(content=content)


@router.post("/ebooks/generate", response_model=TextResponse)
async def generate_ebook(
    body: EbookRequest,
    request: Request,
    service: AuthoringService = Depends(get_authoring_service)
):
    tag_generation_request(request, body.provider, body.model)
    async with cancel_on_disconnect(request) as cancel_event:
        content = await service.generate_ebook(
            topic=body.topic,
            word_count=body.word_count,
            tone=body.tone,
            audience=body.audience,
            outline=body.outline,
            custom_tone=body.custom_tone,
            provider=body.provider,
            model=body.model,
            api_key=body.api_key,
            cancel_event=cancel_event,
        )
    return TextResponse(content=content)


@router.post("/humanize", response_model=TextResponse)
async def humanize(
    body: HumanizeRequest,
    request: Request,
    service: AuthoringService = Depends(get_authoring_service)
):
    tag_generation_request(request, body.provider, body.model)
    async with cancel_on_disconnect(request) as cancel_event:
        content = await service.humanize_content(
            body.content, body.provider, body.model, body.api_key, cancel_event=cancel_event
        )
    return TextResponse(content=content)
