from fastapi import APIRouter, Depends

from hdtn_connect.core.dependencies import get_assistant_service
from hdtn_connect.modules.assistant.schemas import (
    AssistantReply, ChatRequest, StructuredRequest, StructuredResponse,
    TranslateRequest, TranslateResponse
)
from hdtn_connect.modules.assistant.service import AssistantService

router = APIRouter(prefix="/assistant", tags=["assistant"])


@router.post("/translate", response_model=TranslateResponse)
async def translate(
    request: TranslateRequest,
    service: AssistantService = Depends(get_assistant_service)
):
    """Translate text to the target language"""
    text = await service.translate_text(request.text, request.target_language)
    return TranslateResponse(text=text)


@router.post("/chat", response_model=AssistantReply)
async def chat(
    request: ChatRequest,
    service: AssistantService = Depends(get_assistant_service)
):
    """Search-grounded answer with web citations"""
    return await service.ask_with_search(request.prompt)


@router.post("/structured", response_model=StructuredResponse)
async def structured(
    request: StructuredRequest,
    service: AssistantService = Depends(get_assistant_service)
):
    """JSON answer shaped like ``example``; ``data`` is null when none could be parsed"""
    data = await service.structured_response(request.prompt, request.example)
    return StructuredResponse(data=data, available=service.is_available())
