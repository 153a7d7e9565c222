from pydantic import BaseModel, Field
from typing import Any, List, Optional


class TranslateRequest(BaseModel):
    text: str = Field(min_length=1)
    target_language: str = Field(min_length=1)


class TranslateResponse(BaseModel):
    text: str


class ChatRequest(BaseModel):
    prompt: str = Field(min_length=1)


class StructuredRequest(BaseModel):
    prompt: str = Field(min_length=1)
    # Sample of the JSON shape the answer should follow
    example: Any


class StructuredResponse(BaseModel):
    data: Optional[Any] = None
    available: bool = True


class SearchSource(BaseModel):
    uri: str
    title: Optional[str] = None


class AssistantReply(BaseModel):
    text: str
    sources: List[SearchSource] = []
    available: bool = True
