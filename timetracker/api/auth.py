from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import AuthError
from ..models.models import User
from ..services.auth_service import (
    authenticate_user, create_user, create_token_for_user, resolve_identity
)
from ..schemas.user import UserCreate, UserLogin, UserResponse, AuthResponse, Token
from .metrics import auth_failed_logins, auth_token_errors

router = APIRouter(prefix="/auth", tags=["auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/token", auto_error=False)

def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Session = Depends(get_db)
) -> User:
    """Get current user from JWT token."""
    try:
        return resolve_identity(db, token)
    except AuthError:
        auth_token_errors.inc()
        raise

def _login(db: Session, email: str, password: str) -> User:
    user = authenticate_user(db, email, password)
    if not user:
        auth_failed_logins.inc()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user and return a token for them."""
    db_user = create_user(db=db, user_create=user)
    return AuthResponse(user=UserResponse.model_validate(db_user), token=create_token_for_user(db_user))

@router.post("/signin", response_model=AuthResponse)
def signin(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login with a JSON body."""
    user = _login(db, credentials.email, credentials.password)
    return AuthResponse(user=UserResponse.model_validate(user), token=create_token_for_user(user))

@router.post("/token", response_model=Token, status_code=status.HTTP_200_OK)
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Session = Depends(get_db)
):
    """Login with an OAuth2 password form to get an access token."""
    user = _login(db, form_data.username, form_data.password)
    return {"access_token": create_token_for_user(user), "token_type": "bearer"}

@router.get("/me", response_model=UserResponse)
def read_current_user(current_user: User = Depends(get_current_user)):
    """Get the identity behind the bearer token."""
    return current_user
