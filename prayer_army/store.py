"""
Typed CRUD over the four collections held by the managed backend.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from prayer_army.errors import InvalidTransitionError, NotFoundError
from prayer_army.gateway import (
    FELLOWSHIPS,
    PRAYER_COMPLETIONS,
    PRAYER_REQUESTS,
    TEAM_MEMBERS,
    BackendGateway,
    Row,
)
from prayer_army.types import RequestStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class PrayerRequest:
    id: str
    request_number: str
    name: str
    mobile_number: str
    prayer_text: Optional[str]
    voice_recording_url: Optional[str]
    image_url: Optional[str]
    document_url: Optional[str]
    status: RequestStatus
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Row) -> "PrayerRequest":
        return cls(
            id=row["id"],
            request_number=row["request_number"],
            name=row["name"],
            mobile_number=row["mobile_number"],
            prayer_text=row.get("prayer_text"),
            voice_recording_url=row.get("voice_recording_url"),
            image_url=row.get("image_url"),
            document_url=row.get("document_url"),
            status=RequestStatus(row["status"]),
            created_at=row["created_at"],
            completed_at=row.get("completed_at"),
        )

    def as_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class Fellowship:
    id: str
    name: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Row) -> "Fellowship":
        return cls(id=row["id"], name=row["name"], created_at=row["created_at"])


@dataclass(frozen=True)
class TeamMember:
    id: str
    name: str
    fellowship_id: str
    created_at: datetime
    email: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Row) -> "TeamMember":
        return cls(
            id=row["id"],
            name=row["name"],
            fellowship_id=row["fellowship_id"],
            created_at=row["created_at"],
            email=row.get("email"),
            user_id=row.get("user_id"),
        )


@dataclass(frozen=True)
class PrayerCompletion:
    id: str
    prayer_request_id: str
    team_member_id: str
    completed_at: datetime

    @classmethod
    def from_row(cls, row: Row) -> "PrayerCompletion":
        return cls(
            id=row["id"],
            prayer_request_id=row["prayer_request_id"],
            team_member_id=row["team_member_id"],
            completed_at=row["completed_at"],
        )

    @property
    def pair(self) -> tuple[str, str]:
        return self.prayer_request_id, self.team_member_id


class EntityStore:
    """Typed access to prayer requests, fellowships, members and completions."""

    def __init__(self, gateway: BackendGateway, clock: Callable[[], datetime] = utcnow):
        self.gateway = gateway
        self.clock = clock

    # Prayer requests

    def generate_request_number(self) -> str:
        return self.gateway.generate_request_number()

    def create_request(
        self,
        *,
        request_number: str,
        name: str,
        mobile_number: str,
        prayer_text: Optional[str] = None,
        voice_recording_url: Optional[str] = None,
        image_url: Optional[str] = None,
        document_url: Optional[str] = None,
    ) -> PrayerRequest:
        row = self.gateway.insert(
            PRAYER_REQUESTS,
            {
                "id": new_id(),
                "request_number": request_number,
                "name": name,
                "mobile_number": mobile_number,
                "prayer_text": prayer_text,
                "voice_recording_url": voice_recording_url,
                "image_url": image_url,
                "document_url": document_url,
                "status": RequestStatus.PENDING.value,
                "created_at": self.clock(),
                "completed_at": None,
            },
        )
        return PrayerRequest.from_row(row)

    def get_request(self, request_id: str) -> Optional[PrayerRequest]:
        rows = self.gateway.select(PRAYER_REQUESTS, {"id": request_id})
        return PrayerRequest.from_row(rows[0]) if rows else None

    def list_requests(self, status: Optional[RequestStatus] = None) -> List[PrayerRequest]:
        """Newest first, optionally restricted to one status."""
        filters = {"status": status.value} if status else None
        rows = self.gateway.select(
            PRAYER_REQUESTS, filters, order_by="created_at", descending=True
        )
        return [PrayerRequest.from_row(r) for r in rows]

    def complete_request(self, request_id: str) -> PrayerRequest:
        current = self.get_request(request_id)
        if current is None:
            raise NotFoundError("That prayer request no longer exists.")
        if current.status == RequestStatus.COMPLETED:
            raise InvalidTransitionError("That prayer request is already completed.")
        # Conditional on still being pending so the stamp is written once.
        updated = self.gateway.update(
            PRAYER_REQUESTS,
            {"id": request_id, "status": RequestStatus.PENDING.value},
            {"status": RequestStatus.COMPLETED.value, "completed_at": self.clock()},
        )
        if not updated:
            raise InvalidTransitionError("That prayer request is already completed.")
        return self.get_request(request_id)

    def delete_request(self, request_id: str) -> bool:
        self.gateway.delete(PRAYER_COMPLETIONS, {"prayer_request_id": request_id})
        return bool(self.gateway.delete(PRAYER_REQUESTS, {"id": request_id}))

    # Fellowships

    def create_fellowship(self, name: str) -> Fellowship:
        row = self.gateway.insert(
            FELLOWSHIPS, {"id": new_id(), "name": name, "created_at": self.clock()}
        )
        return Fellowship.from_row(row)

    def get_fellowship(self, fellowship_id: str) -> Optional[Fellowship]:
        rows = self.gateway.select(FELLOWSHIPS, {"id": fellowship_id})
        return Fellowship.from_row(rows[0]) if rows else None

    def list_fellowships(self) -> List[Fellowship]:
        rows = self.gateway.select(FELLOWSHIPS, order_by="created_at")
        return [Fellowship.from_row(r) for r in rows]

    def delete_fellowship(self, fellowship_id: str) -> bool:
        return bool(self.gateway.delete(FELLOWSHIPS, {"id": fellowship_id}))

    # Team members

    def create_member(
        self, fellowship_id: str, name: str, email: Optional[str] = None
    ) -> TeamMember:
        row = self.gateway.insert(
            TEAM_MEMBERS,
            {
                "id": new_id(),
                "user_id": None,
                "name": name,
                "email": email,
                "fellowship_id": fellowship_id,
                "created_at": self.clock(),
            },
        )
        return TeamMember.from_row(row)

    def get_member(self, member_id: str) -> Optional[TeamMember]:
        rows = self.gateway.select(TEAM_MEMBERS, {"id": member_id})
        return TeamMember.from_row(rows[0]) if rows else None

    def list_members(self, fellowship_id: Optional[str] = None) -> List[TeamMember]:
        """Oldest first; insertion order for members created in the same instant."""
        filters = {"fellowship_id": fellowship_id} if fellowship_id else None
        rows = self.gateway.select(TEAM_MEMBERS, filters, order_by="created_at")
        return [TeamMember.from_row(r) for r in rows]

    def delete_member(self, member_id: str) -> bool:
        return bool(self.gateway.delete(TEAM_MEMBERS, {"id": member_id}))

    def delete_members_of(self, fellowship_id: str) -> int:
        return self.gateway.delete(TEAM_MEMBERS, {"fellowship_id": fellowship_id})

    # Completions

    def list_completions(
        self,
        request_id: Optional[str] = None,
        member_id: Optional[str] = None,
    ) -> List[PrayerCompletion]:
        filters = {}
        if request_id:
            filters["prayer_request_id"] = request_id
        if member_id:
            filters["team_member_id"] = member_id
        rows = self.gateway.select(PRAYER_COMPLETIONS, filters or None, order_by="completed_at")
        return [PrayerCompletion.from_row(r) for r in rows]

    def insert_completion(self, request_id: str, member_id: str) -> PrayerCompletion:
        """Raises DuplicateRowError if the pair is already recorded."""
        row = self.gateway.insert(
            PRAYER_COMPLETIONS,
            {
                "id": new_id(),
                "prayer_request_id": request_id,
                "team_member_id": member_id,
                "completed_at": self.clock(),
            },
        )
        return PrayerCompletion.from_row(row)

    def delete_completion(self, request_id: str, member_id: str) -> int:
        return self.gateway.delete(
            PRAYER_COMPLETIONS,
            {"prayer_request_id": request_id, "team_member_id": member_id},
        )

    def delete_member_completions(self, member_id: str) -> int:
        return self.gateway.delete(PRAYER_COMPLETIONS, {"team_member_id": member_id})
