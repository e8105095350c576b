from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class ActionRequestCreate(BaseModel):
    action: str = Field(..., min_length=1, max_length=100)
    payload: Optional[Dict[str, Any]] = None
