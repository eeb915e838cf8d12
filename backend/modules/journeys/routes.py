"""
Journey API endpoints.

Provides REST endpoints for journey creation, join tokens, admission,
membership management and journey settings. Domain errors propagate to
the application's TripsplitError handler.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_journey_service
from api.middleware.auth import get_current_user, get_optional_user
from api.middleware.rate_limit import limit_general, limit_mutations
from modules.ratelimit import build_rate_limit_key
from shared.models import AuthenticatedUser

from .interfaces import IJourneyAdmissionService
from .models import (
    ApprovalToggleRequest,
    CreateJourneyRequest,
    JoinResult,
    JoinTokenResponse,
    JoinViaTokenRequest,
    JourneyView,
    LeaveJourneyRequest,
    LockToggleRequest,
    MemberActionRequest,
    SetPasswordRequest,
)

router = APIRouter()


@router.post(
    "",
    response_model=JourneyView,
    status_code=201,
    dependencies=[Depends(limit_mutations)],
)
async def create_journey(
    request: CreateJourneyRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    """Create a journey led by the current user."""
    journey = await service.create_journey(
        user.id,
        request.name,
        start_date=request.start_date,
        end_date=request.end_date,
    )
    return JourneyView.from_journey(journey)


@router.post("/join", response_model=JoinResult)
async def join_journey_via_token(
    request: JoinViaTokenRequest,
    http_request: Request,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JoinResult:
    """
    Redeem a join token.

    Works with or without a session. Without one, a guest user is created
    from the supplied name.
    """
    client_ip = http_request.client.host if http_request.client else None
    return await service.join_journey_via_token(
        request.token,
        name=request.name,
        password=request.password,
        user_id=user.id if user else None,
        client_key=build_rate_limit_key(user.id if user else None, client_ip),
    )


@router.get(
    "/{slug}",
    response_model=JourneyView,
    dependencies=[Depends(limit_general)],
)
async def get_journey(
    slug: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    journey = await service.get_journey(slug, user.id)
    return JourneyView.from_journey(journey)


@router.post(
    "/{journey_id}/join-token",
    response_model=JoinTokenResponse,
    dependencies=[Depends(limit_mutations)],
)
async def generate_join_token(
    journey_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JoinTokenResponse:
    """Issue a short-lived join token. Any earlier token stops working."""
    token = await service.generate_join_token(journey_id, user.id)
    return JoinTokenResponse(token=token, expires_in=service.join_token_ttl_seconds)


@router.post(
    "/{journey_id}/requests/approve",
    response_model=JourneyView,
    dependencies=[Depends(limit_mutations)],
)
async def approve_join_request(
    journey_id: str,
    request: MemberActionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    journey = await service.approve_join_request(journey_id, user.id, request.user_id)
    return JourneyView.from_journey(journey)


@router.post(
    "/{journey_id}/requests/reject",
    response_model=JourneyView,
    dependencies=[Depends(limit_mutations)],
)
async def reject_join_request(
    journey_id: str,
    request: MemberActionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    journey = await service.reject_join_request(journey_id, user.id, request.user_id)
    return JourneyView.from_journey(journey)


@router.post(
    "/{journey_id}/requests/approve-all",
    response_model=JourneyView,
    dependencies=[Depends(limit_mutations)],
)
async def approve_all_join_requests(
    journey_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    journey = await service.approve_all_join_requests(journey_id, user.id)
    return JourneyView.from_journey(journey)


@router.post(
    "/{journey_id}/requests/reject-all",
    response_model=JourneyView,
    dependencies=[Depends(limit_mutations)],
)
async def reject_all_join_requests(
    journey_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    journey = await service.reject_all_join_requests(journey_id, user.id)
    return JourneyView.from_journey(journey)


@router.post(
    "/{journey_id}/members/remove",
    response_model=JourneyView,
    dependencies=[Depends(limit_mutations)],
)
async def remove_member(
    journey_id: str,
    request: MemberActionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    """Remove a member or pending user. Leader only."""
    journey = await service.remove_member(journey_id, user.id, request.user_id)
    return JourneyView.from_journey(journey)


@router.post(
    "/{journey_id}/leave",
    response_model=JourneyView,
    dependencies=[Depends(limit_mutations)],
)
async def leave_journey(
    journey_id: str,
    request: Optional[LeaveJourneyRequest] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    """
    Leave a journey.

    If the leader leaves, the journey and everything in it is scheduled
    for deletion a few hours later.
    """
    offset = request.leader_timezone_offset_minutes if request else None
    journey = await service.leave_journey(journey_id, user.id, offset)
    return JourneyView.from_journey(journey)


@router.put(
    "/{journey_id}/approval",
    response_model=JourneyView,
    dependencies=[Depends(limit_mutations)],
)
async def toggle_approval_requirement(
    journey_id: str,
    request: ApprovalToggleRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    journey = await service.toggle_approval_requirement(
        journey_id, user.id, request.require_approval
    )
    return JourneyView.from_journey(journey)


@router.put(
    "/{journey_id}/lock",
    response_model=JourneyView,
    dependencies=[Depends(limit_mutations)],
)
async def toggle_journey_lock(
    journey_id: str,
    request: LockToggleRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> JourneyView:
    journey = await service.toggle_journey_lock(journey_id, user.id, request.is_locked)
    return JourneyView.from_journey(journey)


@router.put(
    "/{journey_id}/password",
    dependencies=[Depends(limit_mutations)],
)
async def set_journey_password(
    journey_id: str,
    request: SetPasswordRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IJourneyAdmissionService = Depends(get_journey_service),
) -> dict:
    """Set the join password, or clear it with null."""
    success = await service.set_journey_password(journey_id, user.id, request.password)
    return {"success": success}
