from pydantic import BaseModel
from typing import Optional, List, Literal


class ChatHistoryItem(BaseModel):
    sender: Literal["assistant", "user"]
    content: str


class ChatRequest(BaseModel):
    # Optional so a blank message yields 400 rather than a validation error
    message: Optional[str] = None
    history: List[ChatHistoryItem] = []


class ChatResponse(BaseModel):
    response: str
    model: str


class SuggestionAction(BaseModel):
    label: str
    route: str


class Suggestion(BaseModel):
    type: Literal["warning", "info", "success", "action"]
    title: str
    description: str
    action: Optional[SuggestionAction] = None


class SuggestionList(BaseModel):
    results: List[Suggestion]
