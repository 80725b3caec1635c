from fastapi import APIRouter, Depends
from bib.core.dependencies import get_current_user, get_optional_service_supabase, get_user_supabase
from bib.modules.recommendations.schemas import (
    AlreadyRecommendedRequest,
    AlreadyRecommendedResponse,
    FriendRecommendationResponse,
    FriendReminderPollResponse,
    MarkReadRequest,
    PollRequest,
    SendRecommendationsRequest,
    SendRecommendationsResponse,
    UnreadCountResponse,
)
from bib.modules.recommendations.service import RecommendationService
from supabase import Client
from typing import Dict, List, Optional

router = APIRouter(prefix="/friend-recommendations", tags=["friend-recommendations"])


def get_recommendation_service(
    supabase: Client = Depends(get_user_supabase),
    service_client: Optional[Client] = Depends(get_optional_service_supabase),
) -> RecommendationService:
    return RecommendationService(supabase, service_client)


@router.post("/send", response_model=SendRecommendationsResponse)
def send_recommendations(
    body: SendRecommendationsRequest,
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Recommend titles to friends (runs in the threadpool: inserts may back off and retry)"""
    return service.send(current_user["id"], body.recommendations)


@router.get("/received", response_model=List[FriendRecommendationResponse])
async def get_received(
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    return service.get_received(current_user["id"])


@router.get("/sent", response_model=List[FriendRecommendationResponse])
async def get_sent(
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    return service.get_sent(current_user["id"])


@router.get("/recent", response_model=List[FriendRecommendationResponse])
async def get_recent(
    limit: int = 5,
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Latest few received recommendations for the notification bell"""
    return service.get_recent(current_user["id"], limit=min(max(limit, 1), 20))


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    return UnreadCountResponse(count=service.unread_count(current_user["id"]))


@router.post("/read", status_code=204)
async def mark_many_read(
    body: MarkReadRequest,
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    service.mark_many_read(current_user["id"], body.ids)
    return None


@router.post("/already-recommended", response_model=AlreadyRecommendedResponse)
async def already_recommended(
    body: AlreadyRecommendedRequest,
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Recipients that already have this title from the caller"""
    found = service.already_recommended(
        current_user["id"], body.recipient_ids, body.tmdb_id, body.recommendation_id
    )
    return AlreadyRecommendedResponse(recipient_ids=sorted(found))


@router.post("/reminders/poll", response_model=FriendReminderPollResponse)
async def poll_friend_reminders(
    body: Optional[PollRequest] = None,
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Claim due friend reminders"""
    limit = body.limit if body is not None else 5
    return FriendReminderPollResponse(reminders=service.poll_due_reminders(current_user["id"], limit))


@router.post("/{rec_id}/read", status_code=204)
async def mark_read(
    rec_id: str,
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    service.mark_read(current_user["id"], rec_id)
    return None


@router.post("/{rec_id}/watched", status_code=204)
async def mark_watched(
    rec_id: str,
    current_user: Dict = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    service.mark_watched(current_user["id"], rec_id)
    return None
