import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings
from .errors import InvalidTokenError
from .services.identity_service import IdentityGateway
from .services.llm_client import CompletionClient
from .services.quiz_result_service import QuizResultStore
from .services.token_service import SessionTokenService
from .services.youtube_service import VideoSearchService

logger = logging.getLogger("openlearnhub.dependencies")

bearer_scheme = HTTPBearer(auto_error=False)


# Services are built once in the app lifespan and kept on app.state.

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> SessionTokenService:
    return request.app.state.token_service


def get_identity_gateway(request: Request) -> IdentityGateway:
    return request.app.state.identity_gateway


def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completion_client


def get_quiz_result_store(request: Request) -> QuizResultStore:
    return request.app.state.quiz_result_store


def get_video_search(request: Request) -> VideoSearchService:
    return request.app.state.video_search


async def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: SessionTokenService = Depends(get_token_service),
) -> str:
    """
    Reject the request unless it carries a valid bearer token.
    The verified uid is stored on request.state and returned.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access denied. No token provided.")

    try:
        claims = tokens.decode(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning(f"Rejected bearer token on {request.url.path}: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    request.state.uid = claims["uid"]
    request.state.claims = claims
    return claims["uid"]
