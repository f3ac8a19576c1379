"""
User service — registration, login and password reset for the User
aggregate.

Validation problems and bad credentials are returned as field errors in
a ``UserResult`` so the client can show them next to the form input;
only storage failures propagate as exceptions.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from forum import mailer
from forum.config import settings
from forum.database import atomic
from forum.models import User
from forum.schemas import FieldError, UserResult, UsernamePasswordInput
from forum.security import hash_password, verify_password
from forum.store import store

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password.
_MAX_PASSWORD_BYTES = 72


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def validate_password(password: str, field: str = "password") -> list[FieldError]:
    if len(password) <= 2:
        return [FieldError(field=field, message="length must be greater than 2")]
    if len(password.encode("utf-8")) > _MAX_PASSWORD_BYTES:
        return [FieldError(field=field, message="length must be at most 72 bytes")]
    return []


def validate_register(options: UsernamePasswordInput) -> list[FieldError]:
    errors: list[FieldError] = []
    if "@" not in options.email:
        errors.append(FieldError(field="email", message="invalid email"))
    if len(options.username) <= 2:
        errors.append(FieldError(field="username", message="length must be greater than 2"))
    elif "@" in options.username:
        errors.append(FieldError(field="username", message="cannot include an @"))
    errors.extend(validate_password(options.password))
    return errors


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_login(db: AsyncSession, username_or_email: str) -> User | None:
    column = User.email if "@" in username_or_email else User.username
    result = await db.execute(select(User).where(column == username_or_email))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, options: UsernamePasswordInput) -> UserResult:
    """
    Create a user, or return field errors for invalid or taken values.

    Username and email uniqueness is enforced by the database; the
    integrity error is mapped back to the offending field.
    """
    errors = validate_register(options)
    if errors:
        return UserResult(errors=errors)

    user = User(
        username=options.username,
        email=options.email,
        password=await hash_password(options.password),
    )
    try:
        async with atomic(db):
            db.add(user)
            await db.flush()
    except IntegrityError:
        taken = await db.execute(
            select(User.username, User.email).where(
                (User.username == options.username) | (User.email == options.email)
            )
        )
        for username, email in taken.all():
            if username == options.username:
                return UserResult.error("username", "username already taken")
            if email == options.email:
                return UserResult.error("email", "email already taken")
        # Some other constraint failed; that is not a user input problem.
        raise

    logger.info("User %s registered", user.id)
    return UserResult(user=user)


async def login(db: AsyncSession, username_or_email: str, password: str) -> UserResult:
    user = await get_user_by_login(db, username_or_email)
    if user is None:
        return UserResult.error("usernameOrEmail", "that username doesn't exist")
    if not await verify_password(password, user.password):
        return UserResult.error("password", "incorrect password")
    return UserResult(user=user)


async def forgot_password(db: AsyncSession, email: str) -> bool:
    """
    Email a single-use password-reset link to *email*.

    Always returns True so the response does not reveal which addresses
    have an account.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return True

    token = await store.create_reset_token(user.id)
    link = f"{settings.FRONTEND_URL}/change-password/{token}"
    await mailer.send_email(
        user.email,
        "Change your password",
        f'<a href="{link}">reset password</a>',
    )
    return True


async def change_password(db: AsyncSession, token: str, new_password: str) -> UserResult:
    """
    Set a new password using a reset token; the token is then destroyed.

    A token can be redeemed once, even by concurrent requests: it is
    claimed from the store before any work is done.  Expired, unknown or
    already used tokens produce a ``token`` field error.  If the update
    itself fails, the token is put back so the user can retry.
    """
    errors = validate_password(new_password, field="newPassword")
    if errors:
        return UserResult(errors=errors)

    claim = await store.claim_reset_token(token)
    if claim is None:
        return UserResult.error("token", "token expired")
    user_id, ttl_ms = claim

    try:
        user = await get_user(db, user_id)
        if user is None:
            return UserResult.error("token", "user no longer exists")

        hashed = await hash_password(new_password)
        async with atomic(db):
            await db.execute(update(User).where(User.id == user_id).values(password=hashed))
    except Exception:
        await store.restore_reset_token(token, user_id, ttl_ms)
        raise
    await db.refresh(user)

    logger.info("User %s changed their password", user_id)
    return UserResult(user=user)
