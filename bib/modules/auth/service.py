import hashlib
import logging
import time
from supabase import Client
from bib.modules.auth.schemas import LoginRequest, SignupRequest, SignupResponse, TokenResponse
from bib.modules.auth.validation import (
    SignupValidationError, USERNAME_RE, normalize_username, random_movie_avatar, validate_signup
)
from bib.core.rate_limit import KeyedLimit
from bib.database.supabase_client import SupabaseClient
from fastapi import HTTPException
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500

SIGNUP_EMAIL_LIMIT = "4/hour"
SIGNUP_EMAIL_COOLDOWN = "1/90 seconds"

signup_email_limiter = KeyedLimit(SIGNUP_EMAIL_LIMIT, "signup-email")
signup_email_cooldown = KeyedLimit(SIGNUP_EMAIL_COOLDOWN, "signup-cooldown")


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(
        self,
        supabase: Client,
        service_client: Optional[Client] = None,
        user_client_factory: Callable[[Optional[str]], Client] = SupabaseClient.get_user_client,
    ):
        self.supabase = supabase
        self.service_client = service_client
        self.user_client_factory = user_client_factory

    def signup(self, signup_data: SignupRequest) -> SignupResponse:
        """Create an auth account plus its public profile row"""
        try:
            cleaned = validate_signup(
                signup_data.email,
                signup_data.password,
                signup_data.name,
                signup_data.username,
                signup_data.birthdate,
            )
        except SignupValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        email = cleaned["email"]
        if not signup_email_limiter.hit(email):
            retry_after = signup_email_limiter.retry_after(email)
            raise HTTPException(
                status_code=429,
                detail=f"Too many signup attempts for this email. Try again in {retry_after}s.",
                headers={"Retry-After": str(retry_after)},
            )
        if not signup_email_cooldown.test(email):
            wait = signup_email_cooldown.retry_after(email)
            raise HTTPException(
                status_code=429,
                detail=f"Please wait {wait}s before trying again.",
                headers={"Retry-After": str(wait)},
            )

        lookup = self.service_client or self.supabase
        self._ensure_unique(lookup, "username", cleaned["username"], "Username is already taken.")
        self._ensure_unique(lookup, "email", email, "An account with this email already exists.")

        profile = {
            "email": email,
            "name": cleaned["name"],
            "username": cleaned["username"],
            "avatar": random_movie_avatar(),
            "birthdate": cleaned["birthdate"],
        }
        signup_email_cooldown.hit(email)

        if self.service_client is not None:
            return self._signup_with_admin(cleaned, profile)
        return self._signup_with_anon(cleaned, profile)

    def _ensure_unique(self, lookup: Client, column: str, value: str, conflict_detail: str) -> None:
        try:
            result = lookup.table("users")\
                .select("id")\
                .eq(column, value)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Signup {column} lookup failed: {e}")
            raise HTTPException(status_code=500, detail=f"Unable to validate {column}.")
        if result.data:
            raise HTTPException(status_code=409, detail=conflict_detail)

    def _signup_with_admin(self, cleaned: Dict[str, Any], profile: Dict[str, Any]) -> SignupResponse:
        admin = self.service_client
        try:
            created = admin.auth.admin.create_user({
                "email": cleaned["email"],
                "password": cleaned["password"],
                "email_confirm": True,
                "user_metadata": {"name": cleaned["name"], "username": cleaned["username"]},
            })
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e) or "Unable to create user.")
        if not created or not created.user:
            raise HTTPException(status_code=400, detail="Unable to create user.")

        user_id = created.user.id
        try:
            admin.table("users").insert({"id": user_id, **profile}).execute()
        except Exception as e:
            # Roll back auth user to avoid orphaned auth accounts
            logger.error(f"Profile insert failed for {user_id}, removing auth user: {e}")
            try:
                admin.auth.admin.delete_user(user_id)
            except Exception as rollback_error:
                logger.error(f"Rollback of auth user {user_id} failed: {rollback_error}")
            raise HTTPException(status_code=500, detail="Unable to create user profile.")
        return SignupResponse(ok=True)

    def _signup_with_anon(self, cleaned: Dict[str, Any], profile: Dict[str, Any]) -> SignupResponse:
        try:
            created = self.supabase.auth.sign_up({
                "email": cleaned["email"],
                "password": cleaned["password"],
                "options": {
                    "data": {
                        "name": cleaned["name"],
                        "username": cleaned["username"],
                        "birthdate": cleaned["birthdate"],
                    }
                },
            })
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e) or "Unable to create user.")
        if not created or not created.user:
            raise HTTPException(status_code=400, detail="Unable to create user.")

        # Session is None when email confirmation is required
        if not created.session:
            return SignupResponse(ok=True, needs_email_confirmation=True)

        authed = self.user_client_factory(created.session.access_token)
        try:
            authed.table("users").insert({"id": created.user.id, **profile}).execute()
        except Exception as e:
            logger.error(f"Profile insert failed for {created.user.id}: {e}")
            raise HTTPException(status_code=500, detail="Unable to create user profile.")
        return SignupResponse(ok=True)

    def username_available(self, username: str) -> bool:
        """Check a username without blocking signup on transient lookup failures"""
        username = normalize_username(username or "")
        if not USERNAME_RE.match(username):
            return False
        lookup = self.service_client or self.supabase
        try:
            result = lookup.rpc("check_username_available", {"username": username}).execute()
            if isinstance(result.data, bool):
                return result.data
        except Exception as e:
            logger.debug(f"check_username_available rpc unavailable, falling back: {e}")
        try:
            result = lookup.table("users")\
                .select("id")\
                .eq("username", username)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.warning(f"Username lookup failed: {e}")
            return True
        return not result.data

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })

            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid credentials")

            self._ensure_profile(auth_response.user, auth_response.session.access_token, login_data.email)

            return TokenResponse(
                access_token=auth_response.session.access_token,
                refresh_token=auth_response.session.refresh_token,
                token_type="bearer",
                expires_at=auth_response.session.expires_at,
                user_id=auth_response.user.id,
                email=auth_response.user.email or login_data.email
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password")
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")

    def _ensure_profile(self, user: Any, access_token: str, email: str) -> None:
        """Older accounts may have no profile row yet"""
        authed = self.user_client_factory(access_token)
        try:
            existing = authed.table("users").select("id").eq("id", user.id).limit(1).execute()
            if existing.data:
                return
            metadata = user.user_metadata or {}
            authed.table("users").insert({
                "id": user.id,
                "email": user.email or email,
                "name": metadata.get("name") or email.split("@")[0],
                "avatar": random_movie_avatar(),
            }).execute()
        except Exception as e:
            logger.warning(f"Could not ensure profile for {user.id}: {e}")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "created_at": user.created_at,
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Logout user using Supabase Auth"""
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            # Tokens are stateless JWTs; logout is mainly client-side
            self.supabase.auth.sign_out()
            return True
        except Exception:
            return False
