import logging
import secrets

import redis.asyncio as redis

from forum.config import settings

logger = logging.getLogger(__name__)


class StoreUnavailable(RuntimeError):
    """Raised when a write is attempted without a Redis connection."""


class SessionStore:
    """
    Redis-backed store for login sessions and password-reset tokens.

    Session reads degrade gracefully: with Redis down every caller is
    simply anonymous.  Writes (login, logout, reset tokens) raise
    ``StoreUnavailable`` because silently dropping them would lose a
    login or hand out a token that can never be redeemed.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_TIMEOUT,
            socket_timeout=settings.REDIS_TIMEOUT,
        )
        # Ping to surface mis-configuration early (non-fatal).
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, sessions unavailable: %s", exc)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _client(self) -> redis.Redis:
        if self._redis is None:
            raise StoreUnavailable("session store is not connected")
        return self._redis

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @staticmethod
    def _session_key(session_id: str) -> str:
        return f"{settings.SESSION_PREFIX}{session_id}"

    async def create_session(self, user_id: int) -> str:
        """Store a new session for *user_id* and return its opaque id."""
        session_id = secrets.token_urlsafe(32)
        await self._client().set(
            self._session_key(session_id), str(user_id), ex=settings.SESSION_TTL_SECONDS
        )
        return session_id

    async def get_session_user(self, session_id: str) -> int | None:
        """Return the user id behind *session_id*, or None."""
        if not self._redis:
            return None
        try:
            value = await self._redis.get(self._session_key(session_id))
        except Exception as exc:
            logger.warning("Session lookup failed: %s", exc)
            return None
        return int(value) if value is not None else None

    async def destroy_session(self, session_id: str) -> None:
        await self._client().delete(self._session_key(session_id))

    # ------------------------------------------------------------------
    # Password-reset tokens (single use)
    # ------------------------------------------------------------------

    @staticmethod
    def _reset_key(token: str) -> str:
        return f"{settings.RESET_TOKEN_PREFIX}{token}"

    async def create_reset_token(self, user_id: int) -> str:
        """Issue an unguessable reset token for *user_id* with the reset TTL."""
        token = secrets.token_urlsafe(32)
        await self._client().set(
            self._reset_key(token), str(user_id), ex=settings.RESET_TOKEN_TTL_SECONDS
        )
        return token

    async def claim_reset_token(self, token: str) -> tuple[int, int] | None:
        """
        Atomically take *token* out of the store.

        Returns ``(user_id, remaining_ttl_ms)``, or None when the token is
        unknown, expired or already claimed.  Of several concurrent
        claims for one token, exactly one gets it.
        """
        key = self._reset_key(token)
        async with self._client().pipeline(transaction=True) as pipe:
            pipe.pttl(key)
            pipe.getdel(key)
            ttl_ms, value = await pipe.execute()
        if value is None:
            return None
        return int(value), ttl_ms

    async def restore_reset_token(self, token: str, user_id: int, ttl_ms: int) -> None:
        """Put back a claimed token with the lifetime it had left."""
        if ttl_ms > 0:
            await self._client().set(self._reset_key(token), str(user_id), px=ttl_ms)


# Module-level singleton shared across all request handlers.
store = SessionStore()
