from supabase import Client
from bib.core.errors import raise_for_api_error
from bib.modules.push.schemas import PushSubscriptionCreate
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class PushSubscriptionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def save(self, user_id: str, subscription: PushSubscriptionCreate) -> None:
        """Store a subscription; an endpoint re-registered by another user moves to that user"""
        endpoint = subscription.endpoint.strip()
        if not endpoint or not subscription.p256dh or not subscription.auth:
            raise HTTPException(status_code=400, detail="Incomplete push subscription.")
        try:
            self.supabase.table("push_subscriptions")\
                .upsert({
                    "user_id": user_id,
                    "endpoint": endpoint,
                    "p256dh": subscription.p256dh,
                    "auth": subscription.auth,
                }, on_conflict="endpoint")\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to save push subscription.")
        logger.debug(f"Push subscription saved for user {user_id}")

    def delete(self, user_id: str, endpoint: str) -> None:
        try:
            self.supabase.table("push_subscriptions")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("endpoint", endpoint)\
                .execute()
        except Exception as e:
            raise_for_api_error(e, fallback="Failed to delete push subscription.")
