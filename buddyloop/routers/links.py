"""
Challenge-link router.

POST /invite              — create a buddy-challenge link (funnel: link_created)
GET  /invite/parse?url=   — decode a challenge link
POST /invite/{code}/click — record a click (funnel: link_clicked)
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from buddyloop.core.errors import InvalidChallengeLinkError
from buddyloop.core.runtime import Runtime, get_runtime
from buddyloop.schemas.common import UNPROCESSABLE
from buddyloop.schemas.links import ChallengeLinkOut, ClickResponse, InviteRequest, InviteResponse
from buddyloop.services.funnel import FunnelEventName
from buddyloop.services.smart_links import ChallengeLink

router = APIRouter(prefix="/invite", tags=["invite"])


def _link_out(link: ChallengeLink) -> ChallengeLinkOut:
    return ChallengeLinkOut(
        code=link.code,
        from_user_id=link.from_user_id,
        from_user_name=link.from_user_name,
        subject=link.subject,
        session_id=link.session_id,
        reward_amount=link.reward_amount,
        challenge_type=link.challenge_type,
        campaign=dict(link.campaign),
    )


@router.post(
    "",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a shareable buddy-challenge link",
)
def create_invite(body: InviteRequest, rt: Runtime = Depends(get_runtime)):
    url, link = rt.links.issue(
        session_id=body.session_id,
        sender_id=body.sender_id,
        sender_name=body.sender_name,
        subject=body.subject,
        challenge_type=body.challenge_type,
        reward_amount=body.reward_amount,
    )
    rt.funnel.track(
        FunnelEventName.LINK_CREATED,
        {
            "code": link.code,
            "from_user_id": body.sender_id,
            "session_id": body.session_id,
            "recipient_id": body.recipient_id,
            "message": body.message,
        },
    )
    return InviteResponse(
        link=url,
        code=link.code,
        recipient_id=body.recipient_id,
        recipient_label=body.recipient_email or "Friend",
        challenge=_link_out(link),
    )


@router.get(
    "/parse",
    response_model=ChallengeLinkOut,
    summary="Decode a challenge link",
    responses=UNPROCESSABLE,
)
def parse_invite(
    url: str = Query(min_length=1, description="Full challenge link URL."),
    rt: Runtime = Depends(get_runtime),
):
    link = rt.links.decode(url)
    if link is None:
        raise InvalidChallengeLinkError(url)
    return _link_out(link)


@router.post(
    "/{code}/click",
    response_model=ClickResponse,
    summary="Record a challenge-link click",
)
def track_click(code: str, rt: Runtime = Depends(get_runtime)):
    rt.funnel.track_link_click(code)
    return ClickResponse(code=code, tracked=True)
