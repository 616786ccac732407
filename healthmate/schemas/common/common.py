# healthmate/schemas/common/common.py
from pydantic import BaseModel
from typing import Optional

class ErrorResponse(BaseModel):
    success: bool = False
    data: Optional[dict] = None
    error: str
    code: Optional[str] = None

class MessageResponse(BaseModel):
    message: str
