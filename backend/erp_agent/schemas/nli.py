from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class NLIRequest(BaseModel):
    input: str = Field(..., min_length=1, max_length=2000)
    confirmed: bool = False
    confirm_token: Optional[str] = Field(None, alias="confirmToken")

    class Config:
        populate_by_name = True


class NLIResponse(BaseModel):
    reply: str
    need_confirm: bool = Field(False, alias="needConfirm")
    confirm_token: Optional[str] = Field(None, alias="confirmToken")

    class Config:
        populate_by_name = True


class InsightRequest(BaseModel):
    input: str = Field(..., min_length=1, max_length=5000)
    analysis_type: str = Field("GENERAL", alias="analysisType")
    data_context: str = Field("", alias="dataContext")

    class Config:
        populate_by_name = True


class FailureKind(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_CONFIRMED = "already_confirmed"
    INSUFFICIENT_STOCK = "insufficient_stock"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class DispatchResult(BaseModel):
    success: bool
    message: str
    failure: Optional[FailureKind] = None
