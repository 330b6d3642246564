from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from saysense.db.session import get_db
from saysense.schemas.auth import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest
from saysense.services import auth_service

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
):
    return auth_service.register(db=db, payload=payload)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
):
    return auth_service.login(db=db, payload=payload)


@router.post("/guest", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def guest(db: Session = Depends(get_db)):
    return auth_service.create_guest(db=db)


@router.post("/refresh", response_model=AuthResponse)
def refresh(
    payload: RefreshRequest,
    db: Session = Depends(get_db),
):
    return auth_service.refresh(db=db, refresh_token=payload.refresh_token)
