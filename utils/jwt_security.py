"""
JWT validation for Supabase access tokens.
HS256 tokens signed with the project's JWT secret; validated payloads are cached in memory.
"""

import time
import hashlib
from typing import Optional, Dict, Any
import logging
from uuid import UUID

import jwt
from jwt import ExpiredSignatureError, InvalidSignatureError, InvalidAudienceError, InvalidTokenError

from config import settings

logger = logging.getLogger(__name__)

MAX_CACHE_TTL_SECONDS = 300
MAX_CACHE_ENTRIES = 10_000


class JWTSecurityError(Exception):
    """JWT security-related exceptions."""
    pass


class SupabaseJWTValidator:
    """Supabase JWT validator with a small in-memory cache."""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None,
                 audience: Optional[str] = None):
        self.secret = secret if secret is not None else settings.supabase_jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.audience = audience if audience is not None else settings.jwt_audience

        # token hash -> (expires_at, payload)
        self._cache: Dict[str, tuple] = {}

        self._validation_count = 0
        self._cache_hits = 0

    @staticmethod
    def _get_cache_key(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()[:32]

    def _cache_get(self, cache_key: str) -> Optional[Dict[str, Any]]:
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        expires_at, payload = entry
        if time.time() >= expires_at:
            self._cache.pop(cache_key, None)
            return None
        self._cache_hits += 1
        return payload

    def _cache_set(self, cache_key: str, payload: Dict[str, Any], ttl: int):
        if len(self._cache) >= MAX_CACHE_ENTRIES:
            self._cache.clear()
        self._cache[cache_key] = (time.time() + ttl, payload)

    def validate_jwt_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a Supabase access token.

        Args:
            token: JWT token string

        Returns:
            Dict with user_id, email, role, exp, aud, app_metadata and user_metadata

        Raises:
            JWTSecurityError: If token is invalid or security checks fail
        """
        self._validation_count += 1

        if not token or not isinstance(token, str) or token.count(".") != 2:
            raise JWTSecurityError("Invalid token format")

        if not self.secret:
            logger.error("[JWT] SUPABASE_JWT_SECRET is not configured")
            raise JWTSecurityError("JWT secret not configured")

        cache_key = self._get_cache_key(token)
        cached_payload = self._cache_get(cache_key)
        if cached_payload:
            return cached_payload

        try:
            # Reject 'none' and algorithm confusion before verifying
            algorithm = jwt.get_unverified_header(token).get("alg", "")
            if algorithm != self.algorithm:
                raise JWTSecurityError(f"Unsupported algorithm: {algorithm or 'none'}")

            decode_kwargs: Dict[str, Any] = {
                "algorithms": [self.algorithm],
                "options": {"require": ["exp", "sub"]},
            }
            if self.audience:
                decode_kwargs["audience"] = self.audience
            else:
                decode_kwargs["options"]["verify_aud"] = False

            payload = jwt.decode(token, self.secret, **decode_kwargs)

        except ExpiredSignatureError:
            raise JWTSecurityError("Token has expired")
        except InvalidSignatureError:
            raise JWTSecurityError("Invalid token signature")
        except InvalidAudienceError:
            raise JWTSecurityError("Invalid token audience")
        except InvalidTokenError as e:
            raise JWTSecurityError(f"Invalid token: {e}")

        try:
            user_id = str(UUID(payload["sub"]))
        except (ValueError, TypeError):
            raise JWTSecurityError("Invalid user ID format")

        validated_payload = {
            "user_id": user_id,
            "email": payload.get("email", ""),
            "role": payload.get("role", "authenticated"),
            "exp": payload["exp"],
            "aud": payload.get("aud", ""),
            "app_metadata": payload.get("app_metadata") or {},
            "user_metadata": payload.get("user_metadata") or {},
        }

        remaining = int(payload["exp"] - time.time())
        cache_ttl = min(remaining, MAX_CACHE_TTL_SECONDS)
        if cache_ttl > 0:
            self._cache_set(cache_key, validated_payload, cache_ttl)

        return validated_payload

    def get_metrics(self) -> Dict[str, Any]:
        """Get JWT validation metrics."""
        return {
            "total_validations": self._validation_count,
            "cache_hits": self._cache_hits,
            "cached_tokens": len(self._cache),
        }

    def clear_cache(self):
        self._cache.clear()


_jwt_validator: Optional[SupabaseJWTValidator] = None


def get_jwt_validator() -> SupabaseJWTValidator:
    """Get global JWT validator instance (singleton)."""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = SupabaseJWTValidator()
    return _jwt_validator


def verify_supabase_jwt(token: str) -> Dict[str, Any]:
    """
    Validate a Supabase access token using the global validator.

    Raises:
        JWTSecurityError: If validation fails
    """
    return get_jwt_validator().validate_jwt_token(token)
