from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import logging
import os

from ..exceptions import AuthError, ConflictError, StorageError
from ..models.models import User
from ..schemas.user import UserCreate
from ..utils.uuid_utils import parse_uuid

logger = logging.getLogger(__name__)

# JWT Configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_secret_key() -> str:
    secret_key = os.environ.get("SECRET_KEY")
    if not secret_key:
        raise ValueError("SECRET_KEY environment variable not set")
    return secret_key


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, get_secret_key(), algorithm=ALGORITHM)


def create_token_for_user(user: User, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "name": user.name},
        expires_delta=expires_delta
    )


def create_user(db: Session, user_create: UserCreate) -> User:
    """Create a new user; emails are stored lower-cased."""
    email = user_create.email.lower()
    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    db_user = User(
        email=email,
        hashed_password=get_password_hash(user_create.password),
        name=user_create.name
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        # Lost a race with another signup for the same email
        db.rollback()
        raise ConflictError("User with this email already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Database error while registering user")
        raise StorageError() from e
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)
    return db_user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user by email and password."""
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def get_user(db: Session, user_id: str) -> Optional[User]:
    """Get user by ID."""
    uuid_obj = parse_uuid(user_id)
    if uuid_obj is None:
        return None
    return db.get(User, uuid_obj)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get user by email."""
    return db.query(User).filter(User.email == email.lower()).first()


def resolve_identity(db: Session, token: Optional[str]) -> User:
    """Resolve a bearer token to its user.

    Every failure raises the same AuthError so callers cannot tell a
    malformed token from an expired one or a deleted account.
    """
    if not token:
        raise AuthError()
    try:
        payload = jwt.decode(token, get_secret_key(), algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug("Token rejected: %s", type(e).__name__)
        raise AuthError() from e

    user = get_user(db, payload.get("sub"))
    if user is None:
        logger.debug("Token subject does not match a user")
        raise AuthError()
    return user
