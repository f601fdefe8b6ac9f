"""
Pydantic schemas for the HTTP API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from prayer_army.store import Fellowship, PrayerCompletion, PrayerRequest, TeamMember


class PrayerRequestResponse(BaseModel):
    id: str
    request_number: str
    name: str
    mobile_number: str
    prayer_text: Optional[str] = None
    voice_recording_url: Optional[str] = None
    image_url: Optional[str] = None
    document_url: Optional[str] = None
    status: Literal["pending", "completed"]
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_request(cls, request: PrayerRequest) -> "PrayerRequestResponse":
        return cls(**request.as_dict())


class SubmissionResponse(BaseModel):
    message: str
    request: PrayerRequestResponse


class PrayerRequestListResponse(BaseModel):
    status: Literal["pending", "completed"]
    count: int
    requests: list[PrayerRequestResponse]


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=1024)


class LoginResponse(BaseModel):
    token: str
    email: str
    expires_at: datetime


class StatusResponse(BaseModel):
    status: Literal["ok"]


class ViewResponse(BaseModel):
    view: Literal["submission", "admin_login", "admin_dashboard"]


class CompletionResponse(BaseModel):
    id: str
    prayer_request_id: str
    team_member_id: str
    completed_at: datetime

    @classmethod
    def from_completion(cls, completion: PrayerCompletion) -> "CompletionResponse":
        return cls(
            id=completion.id,
            prayer_request_id=completion.prayer_request_id,
            team_member_id=completion.team_member_id,
            completed_at=completion.completed_at,
        )


class CompletionListResponse(BaseModel):
    completions: list[CompletionResponse]


class CompletionSummaryResponse(BaseModel):
    prayer_request_id: str
    completed: int
    total: int
    member_ids: list[str]
    member_names: list[str]


class ToggleResponse(BaseModel):
    prayer_request_id: str
    team_member_id: str
    completed: bool
    completed_count: int
    total: int


class FellowshipCreate(BaseModel):
    name: str = Field(..., max_length=200)


class MemberCreate(BaseModel):
    name: str = Field(..., max_length=200)
    email: Optional[str] = Field(None, max_length=320)


class MemberResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    fellowship_id: str
    created_at: datetime

    @classmethod
    def from_member(cls, member: TeamMember) -> "MemberResponse":
        return cls(
            id=member.id,
            name=member.name,
            email=member.email,
            fellowship_id=member.fellowship_id,
            created_at=member.created_at,
        )


class FellowshipResponse(BaseModel):
    id: str
    name: str
    created_at: datetime
    members: list[MemberResponse] = []

    @classmethod
    def from_fellowship(
        cls, fellowship: Fellowship, members: list[TeamMember] | None = None
    ) -> "FellowshipResponse":
        return cls(
            id=fellowship.id,
            name=fellowship.name,
            created_at=fellowship.created_at,
            members=[MemberResponse.from_member(m) for m in members or []],
        )


class FellowshipListResponse(BaseModel):
    fellowships: list[FellowshipResponse]


class DeleteResponse(BaseModel):
    status: Literal["ok"]
    removed_members: int = 0
