"""
HTTP routes for the public submission form and the admin dashboard.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from prayer_army.auth import AdminSession, SessionManager
from prayer_army.dependencies import (
    get_admin_session,
    get_desk,
    get_optional_session,
    get_roster,
    get_session_manager,
    get_store,
    get_submission_pipeline,
    get_tracker,
)
from prayer_army.desk import RequestDesk
from prayer_army.errors import NotFoundError
from prayer_army.roster import FellowshipRoster
from prayer_army.schemas import (
    CompletionListResponse,
    CompletionResponse,
    CompletionSummaryResponse,
    DeleteResponse,
    FellowshipCreate,
    FellowshipListResponse,
    FellowshipResponse,
    LoginRequest,
    LoginResponse,
    MemberCreate,
    MemberResponse,
    PrayerRequestListResponse,
    PrayerRequestResponse,
    StatusResponse,
    SubmissionResponse,
    ToggleResponse,
    ViewResponse,
)
from prayer_army.store import EntityStore
from prayer_army.submission import Attachment, SubmissionDraft, SubmissionPipeline
from prayer_army.tracker import CompletionMirror, CompletionTracker
from prayer_army.types import AttachmentKind, RequestStatus, View

logger = logging.getLogger(__name__)

router = APIRouter()

ADMIN_ROUTE_MARKER = "admin"


def resolve_view(route: Optional[str], session: Optional[AdminSession]) -> View:
    """Public form by default; the admin marker leads to login or the dashboard."""
    if (route or "").strip().lstrip("#").lower() != ADMIN_ROUTE_MARKER:
        return View.SUBMISSION
    return View.ADMIN_DASHBOARD if session is not None else View.ADMIN_LOGIN


def _require_confirmation(confirm: bool, what: str) -> None:
    if not confirm:
        raise HTTPException(
            status_code=400,
            detail=f"Deleting {what} needs confirmation (confirm=true).",
        )


async def _read_attachment(
    upload: Optional[UploadFile], kind: AttachmentKind
) -> Optional[Attachment]:
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return Attachment(
        kind=kind,
        data=data,
        content_type=upload.content_type or "application/octet-stream",
        filename=upload.filename,
    )


@router.get("/view", response_model=ViewResponse)
def view(
    route: Optional[str] = Query(None),
    session: Optional[AdminSession] = Depends(get_optional_session),
):
    return ViewResponse(view=resolve_view(route, session).value)


@router.post("/prayer-requests", response_model=SubmissionResponse, status_code=201)
async def submit_prayer_request(
    name: str = Form(""),
    mobile_number: str = Form(""),
    prayer_text: Optional[str] = Form(None),
    voice_recording: Optional[UploadFile] = File(None),
    image: Optional[UploadFile] = File(None),
    document: Optional[UploadFile] = File(None),
    pipeline: SubmissionPipeline = Depends(get_submission_pipeline),
):
    draft = SubmissionDraft(
        name=name,
        mobile_number=mobile_number,
        prayer_text=prayer_text,
        voice=await _read_attachment(voice_recording, AttachmentKind.VOICE),
        image=await _read_attachment(image, AttachmentKind.IMAGE),
        document=await _read_attachment(document, AttachmentKind.DOCUMENT),
    )
    request = pipeline.submit(draft)
    return SubmissionResponse(
        message=pipeline.message,
        request=PrayerRequestResponse.from_request(request),
    )


@router.post("/admin/login", response_model=LoginResponse)
def login(payload: LoginRequest, sessions: SessionManager = Depends(get_session_manager)):
    session = sessions.sign_in(payload.email, payload.password)
    return LoginResponse(token=session.token, email=session.email, expires_at=session.expires_at)


@router.post("/admin/logout", response_model=StatusResponse)
def logout(
    session: AdminSession = Depends(get_admin_session),
    sessions: SessionManager = Depends(get_session_manager),
):
    sessions.sign_out(session)
    return StatusResponse(status="ok")


@router.get("/admin/prayer-requests", response_model=PrayerRequestListResponse)
def list_prayer_requests(
    status: RequestStatus = Query(RequestStatus.PENDING),
    session: AdminSession = Depends(get_admin_session),
    desk: RequestDesk = Depends(get_desk),
):
    requests = desk.list_requests(session, status)
    return PrayerRequestListResponse(
        status=status.value,
        count=len(requests),
        requests=[PrayerRequestResponse.from_request(r) for r in requests],
    )


@router.post(
    "/admin/prayer-requests/{request_id}/complete",
    response_model=PrayerRequestResponse,
)
def complete_prayer_request(
    request_id: str,
    session: AdminSession = Depends(get_admin_session),
    desk: RequestDesk = Depends(get_desk),
):
    return PrayerRequestResponse.from_request(desk.complete(session, request_id))


@router.delete("/admin/prayer-requests/{request_id}", response_model=DeleteResponse)
def delete_prayer_request(
    request_id: str,
    confirm: bool = Query(False),
    session: AdminSession = Depends(get_admin_session),
    desk: RequestDesk = Depends(get_desk),
):
    _require_confirmation(confirm, "a prayer request")
    desk.delete(session, request_id)
    return DeleteResponse(status="ok")


@router.get(
    "/admin/prayer-requests/{request_id}/completions",
    response_model=CompletionSummaryResponse,
)
def completion_summary(
    request_id: str,
    session: AdminSession = Depends(get_admin_session),
    desk: RequestDesk = Depends(get_desk),
    store: EntityStore = Depends(get_store),
    tracker: CompletionTracker = Depends(get_tracker),
):
    desk.get(session, request_id)
    mirror = CompletionMirror.from_completions(tracker.list_completions(session, request_id))
    completed, total = tracker.completion_ratio(session, request_id)
    members = store.list_members()
    roster_ids = {m.id for m in members}
    return CompletionSummaryResponse(
        prayer_request_id=request_id,
        completed=completed,
        total=total,
        member_ids=[
            c.team_member_id
            for c in mirror.for_request(request_id)
            if c.team_member_id in roster_ids
        ],
        member_names=mirror.member_names(request_id, members),
    )


@router.post(
    "/admin/prayer-requests/{request_id}/completions/{member_id}/toggle",
    response_model=ToggleResponse,
)
def toggle_completion(
    request_id: str,
    member_id: str,
    session: AdminSession = Depends(get_admin_session),
    tracker: CompletionTracker = Depends(get_tracker),
):
    completed = tracker.toggle(session, request_id, member_id)
    count, total = tracker.completion_ratio(session, request_id)
    return ToggleResponse(
        prayer_request_id=request_id,
        team_member_id=member_id,
        completed=completed,
        completed_count=count,
        total=total,
    )


@router.get("/admin/completions", response_model=CompletionListResponse)
def list_completions(
    request_id: Optional[str] = Query(None),
    session: AdminSession = Depends(get_admin_session),
    tracker: CompletionTracker = Depends(get_tracker),
):
    completions = sorted(
        tracker.list_completions(session, request_id), key=lambda c: c.completed_at
    )
    return CompletionListResponse(
        completions=[CompletionResponse.from_completion(c) for c in completions]
    )


@router.get("/admin/fellowships", response_model=FellowshipListResponse)
def list_fellowships(
    session: AdminSession = Depends(get_admin_session),
    roster: FellowshipRoster = Depends(get_roster),
):
    return FellowshipListResponse(
        fellowships=[
            FellowshipResponse.from_fellowship(f, members)
            for f, members in roster.list_fellowships(session)
        ]
    )


@router.post("/admin/fellowships", response_model=FellowshipResponse, status_code=201)
def create_fellowship(
    payload: FellowshipCreate,
    session: AdminSession = Depends(get_admin_session),
    roster: FellowshipRoster = Depends(get_roster),
):
    return FellowshipResponse.from_fellowship(roster.create_fellowship(session, payload.name))


@router.delete("/admin/fellowships/{fellowship_id}", response_model=DeleteResponse)
def delete_fellowship(
    fellowship_id: str,
    confirm: bool = Query(False),
    session: AdminSession = Depends(get_admin_session),
    roster: FellowshipRoster = Depends(get_roster),
):
    _require_confirmation(confirm, "a fellowship and all of its team members")
    removed = roster.delete_fellowship(session, fellowship_id)
    return DeleteResponse(status="ok", removed_members=removed)


@router.get(
    "/admin/fellowships/{fellowship_id}/members", response_model=list[MemberResponse]
)
def list_members(
    fellowship_id: str,
    session: AdminSession = Depends(get_admin_session),
    store: EntityStore = Depends(get_store),
    roster: FellowshipRoster = Depends(get_roster),
):
    if store.get_fellowship(fellowship_id) is None:
        raise NotFoundError("That fellowship no longer exists.")
    return [MemberResponse.from_member(m) for m in roster.members_of(session, fellowship_id)]


@router.post(
    "/admin/fellowships/{fellowship_id}/members",
    response_model=MemberResponse,
    status_code=201,
)
def add_member(
    fellowship_id: str,
    payload: MemberCreate,
    session: AdminSession = Depends(get_admin_session),
    roster: FellowshipRoster = Depends(get_roster),
):
    member = roster.add_member(session, fellowship_id, payload.name, payload.email)
    return MemberResponse.from_member(member)


@router.delete("/admin/members/{member_id}", response_model=DeleteResponse)
def remove_member(
    member_id: str,
    confirm: bool = Query(False),
    session: AdminSession = Depends(get_admin_session),
    roster: FellowshipRoster = Depends(get_roster),
):
    _require_confirmation(confirm, "a team member")
    roster.remove_member(session, member_id)
    return DeleteResponse(status="ok")
