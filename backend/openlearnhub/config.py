import os
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger("openlearnhub.config")

REQUIRED_ENV_VARS = ["FIREBASE_CREDENTIALS", "OPENROUTER_API_KEY", "JWT_SECRET"]


class Settings(BaseModel):
    firebase_credentials: Dict[str, Any]
    openrouter_api_key: str
    jwt_secret: str

    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_timeout: float = 60.0
    recommendation_model: str = "mistralai/mistral-7b-instruct"
    quiz_model: str = "deepseek/deepseek-r1-0528:free"
    app_referer: str = "http://localhost:5000"
    app_title: str = "OpenLearnHub"

    youtube_api_key: Optional[str] = None
    mongo_uri: Optional[str] = None

    port: int = 5000
    log_level: str = "INFO"


def parse_firebase_credentials(raw: str) -> Dict[str, Any]:
    """
    Parse the service-account JSON bundle.
    Env files usually carry the private key with escaped newlines.
    """
    try:
        credentials = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"FIREBASE_CREDENTIALS is not valid JSON: {e}")

    if not isinstance(credentials, dict):
        raise RuntimeError("FIREBASE_CREDENTIALS must be a JSON object")

    if isinstance(credentials.get("private_key"), str):
        credentials["private_key"] = credentials["private_key"].replace("\\n", "\n")
    return credentials


def load_settings(environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    Build settings from the environment.
    Raises RuntimeError naming every missing required variable.
    """
    env = os.environ if environ is None else environ

    missing: List[str] = [name for name in REQUIRED_ENV_VARS if not env.get(name)]
    if missing:
        for name in missing:
            logger.error(f"{name} is not set in environment")
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    values: Dict[str, Any] = {
        "firebase_credentials": parse_firebase_credentials(env["FIREBASE_CREDENTIALS"]),
        "openrouter_api_key": env["OPENROUTER_API_KEY"],
        "jwt_secret": env["JWT_SECRET"],
        "youtube_api_key": env.get("YOUTUBE_API_KEY") or None,
        "mongo_uri": env.get("MONGO_URI") or None,
    }

    optional = {
        "OPENROUTER_BASE_URL": "openrouter_base_url",
        "OPENROUTER_TIMEOUT": "openrouter_timeout",
        "RECOMMENDATION_MODEL": "recommendation_model",
        "QUIZ_MODEL": "quiz_model",
        "APP_REFERER": "app_referer",
        "APP_TITLE": "app_title",
        "PORT": "port",
        "LOG_LEVEL": "log_level",
    }
    for env_name, field in optional.items():
        if env.get(env_name):
            values[field] = env[env_name]

    logger.info("Environment variables loaded successfully")
    return Settings(**values)
