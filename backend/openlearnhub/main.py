import os
import time
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables before importing other modules
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import load_settings
from .errors import AppError
from .routes import auth_routes, quiz_routes, recommendation_routes, submit_routes, youtube_routes
from .services.firebase_service import get_firestore_client, init_firebase
from .services.identity_service import IdentityGateway
from .services.llm_client import CompletionClient
from .services.quiz_result_service import QuizResultStore
from .services.token_service import SessionTokenService
from .services.youtube_service import VideoSearchService

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("openlearnhub.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build every provider client once. Missing configuration aborts startup.
    """
    settings = load_settings()
    firebase_app = init_firebase(settings.firebase_credentials)
    db = get_firestore_client(firebase_app)

    app.state.settings = settings
    app.state.token_service = SessionTokenService(settings.jwt_secret)
    app.state.identity_gateway = IdentityGateway(firebase_app, db)
    app.state.completion_client = CompletionClient(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        referer=settings.app_referer,
        title=settings.app_title,
        timeout=settings.openrouter_timeout,
    )
    app.state.quiz_result_store = QuizResultStore(db)
    app.state.video_search = VideoSearchService(settings.youtube_api_key, settings.mongo_uri)

    logger.info(f"OpenLearnHub backend ready on port {settings.port}")
    yield

    app.state.video_search.close()
    logger.info("OpenLearnHub backend shut down")


app = FastAPI(
    title="OpenLearnHub API",
    description="Backend for OpenLearnHub - accounts, session tokens, AI course recommendations, video quizzes and quiz results",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.exception(
            "method=%s path=%s status=500 duration_ms=%s error=%s",
            request.method,
            request.url.path,
            duration_ms,
            str(e),
        )
        raise
    duration_ms = int((time.perf_counter() - start) * 1000)
    logger.info(
        "method=%s path=%s status=%s duration_ms=%s",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', []))}: {err.get('msg')}" for err in errors
    ) or "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed unexpectedly: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(auth_routes.router, tags=["auth"])
app.include_router(recommendation_routes.router, tags=["recommendations"])
app.include_router(quiz_routes.router, tags=["quiz"])
app.include_router(submit_routes.router, tags=["quiz-results"])
app.include_router(youtube_routes.router, prefix="/api/youtube", tags=["youtube"])


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "OpenLearn Hub Backend is running successfully!"


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
