import hashlib
import logging
import time
from supabase import Client
from app.core.errors import api_error
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, EmailRequest
)
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# token hash -> (user payload, expiry); every protected request resolves the bearer token
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()


def _token_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _cached_user(key: str) -> Optional[Dict[str, Any]]:
    entry = _AUTH_USER_CACHE.get(key)
    if entry is None:
        return None
    user_data, expiry = entry
    if time.monotonic() >= expiry:
        _AUTH_USER_CACHE.pop(key, None)
        return None
    return user_data


def _remember_user(key: str, user_data: Dict[str, Any]) -> None:
    if len(_AUTH_USER_CACHE) >= _AUTH_CACHE_MAX_SIZE:
        return
    _AUTH_USER_CACHE[key] = (user_data, time.monotonic() + _AUTH_CACHE_TTL_SEC)


def _mentions(error: Exception, *needles: str) -> bool:
    message = str(error).lower()
    return any(needle in message for needle in needles)


class AuthService:
    """Thin wrapper over Supabase Auth; every other module keys its rows by the user id returned here."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        profile_fields = {"full_name": register_data.full_name, "company": register_data.company}
        try:
            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {"data": {k: v for k, v in profile_fields.items() if v}},
            })
        except Exception as e:
            if _mentions(e, "already registered", "already exists"):
                raise api_error(400, "User already exists")
            logger.error(f"Supabase sign_up failed for {register_data.email}: {e}")
            raise api_error(500, "Registration failed", str(e))

        user = auth_response.user if auth_response else None
        if not user:
            raise api_error(400, "Failed to register user")

        logger.info(f"Registered user {user.id}")
        return RegisterResponse(
            user_id=user.id,
            email=user.email or register_data.email,
            message="User registered successfully",
        )

    def login(self, login_data: LoginRequest) -> TokenResponse:
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password,
            })
        except Exception as e:
            if _mentions(e, "invalid", "credentials"):
                raise api_error(401, "Invalid email or password")
            logger.error(f"Supabase sign_in failed for {login_data.email}: {e}")
            raise api_error(500, "Login failed", str(e))

        if not auth_response or not auth_response.user or not auth_response.session:
            raise api_error(401, "Invalid email or password")

        session = auth_response.session
        return TokenResponse(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            user_id=auth_response.user.id,
            email=auth_response.user.email or login_data.email,
        )

    def send_magic_link(self, request: EmailRequest) -> bool:
        """Passwordless sign in: Supabase emails a one-time login link"""
        payload: Dict[str, Any] = {"email": request.email}
        if request.redirect_to:
            payload["options"] = {"email_redirect_to": request.redirect_to}
        try:
            self.supabase.auth.sign_in_with_otp(payload)
        except Exception as e:
            raise api_error(400, "Could not send magic link", str(e))
        return True

    def reset_password(self, request: EmailRequest) -> bool:
        args = [request.email]
        if request.redirect_to:
            args.append({"redirect_to": request.redirect_to})
        try:
            self.supabase.auth.reset_password_for_email(*args)
        except Exception as e:
            raise api_error(400, "Could not send password reset email", str(e))
        return True

    def get_current_user(self, token: str) -> Dict[str, Any]:
        key = _token_key(token)
        user_data = _cached_user(key)
        if user_data is not None:
            return user_data

        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            if _mentions(e, "jwt", "expired", "invalid"):
                raise api_error(401, "Invalid or expired token")
            logger.warning(f"Token verification failed: {e}")
            raise api_error(401, "Authentication failed")

        user = user_response.user if user_response else None
        if not user:
            raise api_error(401, "Invalid or expired token")

        user_data = {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
            "created_at": user.created_at,
        }
        _remember_user(key, user_data)
        return user_data

    def logout(self, token: str) -> bool:
        _AUTH_USER_CACHE.pop(_token_key(token), None)
        try:
            # tokens are stateless JWTs and stay valid until they expire
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning(f"Supabase sign_out failed: {e}")
            return False
