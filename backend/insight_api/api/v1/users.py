from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from insight_api.core.auth import create_token
from insight_api.core.config import get_settings
from insight_api.core.dependencies import get_db
from insight_api.models.course import User
from insight_api.schemas.user import (
    ForgotPasswordRequest,
    LoginRequest,
    PasswordChange,
    RegisterRequest,
    ResetPasswordRequest,
    UserOut,
    UserUpdate,
)
from insight_api.services.user_service import (
    complete_password_reset,
    get_user_or_404,
    hash_password,
    normalize_email,
    start_password_reset,
    verify_password,
)
from insight_api.utils.rate_limit import rate_limiter

router = APIRouter()


def _user_json(user: User) -> dict:
    return UserOut.model_validate(user).to_json()


@router.post("/register")
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    email = normalize_email(payload.email)
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(409, "Email is already registered")

    user = User(name=payload.name.strip(), email=email, password=hash_password(payload.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(409, "Email is already registered") from exc
    db.refresh(user)
    return [_user_json(user)]


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == normalize_email(payload.email)).first()
    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(401, "Invalid credentials")

    body = _user_json(user)
    if get_settings().jwt_secret:
        body["token"] = create_token(str(user.id), user.email)
    return body


@router.get("")
def list_users(db: Session = Depends(get_db)):
    return [_user_json(u) for u in db.query(User).order_by(User.id).all()]


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)):
    email = normalize_email(payload.email)
    allowed, _ = rate_limiter.allow(f"reset:{email}", get_settings().password_reset_requests_per_hour, 3600)
    if allowed:
        start_password_reset(db, email)
    # Same answer for unknown emails so accounts cannot be enumerated.
    return {"success": True, "message": "If the email is registered, a reset code has been sent"}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    complete_password_reset(db, payload.email, payload.otp, payload.new_password)
    return {"success": True, "message": "Password reset successfully"}


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    return [_user_json(user)] if user else []


@router.put("/{user_id}")
def update_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db)):
    user = get_user_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(400, "Nothing to update")
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return _user_json(user)


@router.put("/{user_id}/password")
def change_password(user_id: int, payload: PasswordChange, db: Session = Depends(get_db)):
    user = get_user_or_404(db, user_id)
    if not verify_password(payload.current_password, user.password):
        raise HTTPException(401, "Current password is incorrect")
    user.password = hash_password(payload.new_password)
    db.commit()
    db.refresh(user)
    return {"message": "Password updated successfully", "user": _user_json(user)}


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        return []
    body = _user_json(user)
    db.delete(user)
    db.commit()
    return [body]
