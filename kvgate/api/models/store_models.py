"""Request and response models for the store routes."""

from typing import Any

from pydantic import BaseModel, Field


class SetValueRequest(BaseModel):
    value: str
    ttl: int | None = Field(default=None, gt=0, description="Time to live in seconds")


class IncrementRequest(BaseModel):
    by: int = Field(default=1, description="Increment (negative to decrement)")


class ExpireRequest(BaseModel):
    seconds: int = Field(..., gt=0)


class HashFieldRequest(BaseModel):
    value: str


class ListPushRequest(BaseModel):
    values: list[str] = Field(..., min_length=1)
    head: bool = Field(default=False, description="LPUSH instead of RPUSH")


class SetMembersRequest(BaseModel):
    members: list[str] = Field(..., min_length=1)


class ZAddRequest(BaseModel):
    member: str
    score: float


class JsonDocumentRequest(BaseModel):
    path: str = "."
    value: Any


class ValueResponse(BaseModel):
    key: str
    value: Any = None


class CountResponse(BaseModel):
    key: str
    count: int


class ScoredMemberResponse(BaseModel):
    member: str
    score: float
