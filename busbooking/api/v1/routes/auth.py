import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from busbooking.api.deps import get_current_user, get_settings
from busbooking.core.config import Settings
from busbooking.core.security import ROLE_CUSTOMER, create_access_token, hash_password, verify_password
from busbooking.db.session import get_db
from busbooking.models.user import User
from busbooking.schemas.auth import LoginRequest, RegisterRequest, TokenOut

router = APIRouter(tags=["auth"])

@router.post("/auth/register", response_model=TokenOut, status_code=201)
def register(body: RegisterRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    email = body.email.strip().lower()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="valid email required")
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="email already exists")
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        full_name=body.full_name or "",
        phone=body.phone or "",
        role=ROLE_CUSTOMER,
        password_hash=hash_password(body.password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    return TokenOut(access_token=create_access_token(settings, user.id, user.role), role=user.role)

@router.post("/auth/login", response_model=TokenOut)
def login(body: LoginRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = db.query(User).filter(User.email == body.email.strip().lower()).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return TokenOut(access_token=create_access_token(settings, user.id, user.role), role=user.role)

@router.get("/auth/me")
def me(me: User = Depends(get_current_user)):
    """Return current user info including role."""
    return {
        "id": me.id,
        "email": me.email,
        "fullName": me.full_name or "",
        "phone": me.phone or "",
        "role": me.role,
    }
