from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from sschool.api.dependencies import get_current_user, get_db, get_notifier, get_user_service
from sschool.core.permissions import Identity
from sschool.schemas.user import LoginRequest, LoginResponse, RegisterRequest, UserMessageResponse, UserResponse
from sschool.services.notification_service import Notifier, welcome_notification
from sschool.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserMessageResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Register a new user; the role comes from the body and defaults to student"""
    user = users.register(db, payload)
    background_tasks.add_task(notifier.enqueue, welcome_notification(user.name, user.email, user.role.value))
    return {"message": "User registered successfully", "user": user}


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
):
    """Verify credentials and issue a 24 hour bearer token"""
    token, user = users.login(db, payload)
    return {"message": "Login successful", "token": token, "user": user}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    identity: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
):
    """Get current user information"""
    return users.get_profile(db, identity)
