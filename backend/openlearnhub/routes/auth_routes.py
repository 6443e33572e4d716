import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import BaseModel

from ..dependencies import get_identity_gateway, get_token_service, require_user
from ..errors import AccountCreationError, UpstreamError
from ..services.identity_service import IdentityGateway
from ..services.token_service import SESSION_TTL, SessionTokenService

logger = logging.getLogger("openlearnhub.routes.auth_routes")

router = APIRouter()


class SignupRequest(BaseModel):
    fullName: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirmPassword: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class GoogleSignInRequest(BaseModel):
    idToken: Optional[str] = None


class PostRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


@router.post("/signup", status_code=201, response_model=Dict[str, Any])
async def signup(
    payload: SignupRequest = Body(...),
    identity: IdentityGateway = Depends(get_identity_gateway),
    tokens: SessionTokenService = Depends(get_token_service),
):
    """
    Create a Firebase account plus its profile and return a one-hour session token.
    """
    if not all([payload.fullName, payload.username, payload.email, payload.password, payload.confirmPassword]):
        raise HTTPException(status_code=400, detail="All fields are required")

    if payload.password != payload.confirmPassword:
        raise HTTPException(status_code=400, detail="Passwords do not match")

    try:
        uid = await identity.register(payload.fullName, payload.username, payload.email, payload.password)
    except AccountCreationError as e:
        raise HTTPException(status_code=500, detail=e.message)

    token = tokens.issue(uid, ttl=SESSION_TTL)
    return {"message": "User created successfully", "token": token, "uid": uid}


@router.post("/login", response_model=Dict[str, Any])
async def login(
    payload: LoginRequest = Body(...),
    identity: IdentityGateway = Depends(get_identity_gateway),
    tokens: SessionTokenService = Depends(get_token_service),
):
    """
    Look the user up by email and return a one-hour session token.
    """
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        account = await identity.find_by_email(payload.email)
    except UpstreamError as e:
        raise HTTPException(status_code=500, detail=f"Authentication failed: {e.message}")

    if account is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = tokens.issue(account.uid, ttl=SESSION_TTL)
    return {"message": "Login successful", "token": token, "user": account.profile()}


@router.post("/google-signin", response_model=Dict[str, Any])
async def google_signin(
    payload: GoogleSignInRequest = Body(...),
    identity: IdentityGateway = Depends(get_identity_gateway),
    tokens: SessionTokenService = Depends(get_token_service),
):
    """
    Exchange a Firebase ID token from Google sign-in for a session token.
    These tokens carry no expiry.
    """
    if not payload.idToken:
        raise HTTPException(status_code=400, detail="Google ID token is required")

    try:
        user = await identity.sign_in_with_google(payload.idToken)
    except Exception as e:
        logger.error(f"Google sign-in failed: {e}")
        raise HTTPException(status_code=500, detail=f"Google sign-in failed: {e}")

    token = tokens.issue(user["uid"])
    return {"message": "Google sign-in successful", "token": token, "uid": user["uid"]}


@router.get("/profile", response_model=Dict[str, Any])
async def profile(request: Request, uid: str = Depends(require_user)):
    return {"message": "Welcome to your profile!", "user": request.state.claims}


@router.get("/dashboard", response_model=Dict[str, Any])
async def dashboard(request: Request, uid: str = Depends(require_user)):
    return {"message": "This is your dashboard!", "user": request.state.claims}


@router.post("/create-post", response_model=Dict[str, Any])
async def create_post(payload: PostRequest = Body(...), uid: str = Depends(require_user)):
    return {"message": "Post created successfully!", "title": payload.title, "content": payload.content}
