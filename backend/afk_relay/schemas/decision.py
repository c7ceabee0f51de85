from typing import Literal

from pydantic import BaseModel, Field

DecisionValue = Literal["allow", "dismiss"]


class NotifyRequest(BaseModel):
    """Body sent by the agent hook. Field names are snake_case on the wire."""

    title: str | None = None
    message: str | None = None
    tool_use_id: str | None = None
    session_id: str | None = None


class NotifyResponse(BaseModel):
    success: bool
    decision_id: str = Field(..., alias="decisionId")

    model_config = {"populate_by_name": True}


class SimpleNotifyRequest(BaseModel):
    title: str | None = None
    message: str | None = None


class SimpleNotifyResponse(BaseModel):
    success: bool


class DecisionStatusResponse(BaseModel):
    status: Literal["pending", "decided", "expired"]
    decision: DecisionValue | None = None


class DecisionSubmitRequest(BaseModel):
    decision: str | None = None
    tool_use_id: str | None = Field(None, alias="toolUseId")

    model_config = {"populate_by_name": True}


class DecisionSubmitResponse(BaseModel):
    success: bool
    decision: DecisionValue | None = None
    message: str | None = None
