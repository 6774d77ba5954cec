import os
from datetime import timedelta


def normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def parse_model_list(raw: str | None) -> list[str]:
    return [name.strip() for name in (raw or "").split(",") if name.strip()]


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = normalize_database_url(
        os.getenv("DATABASE_URL", "sqlite:///dev.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "fittrack/static/uploads")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", 10 * 1024 * 1024))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"
    SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "fittrack_session")
    PERMANENT_SESSION_LIFETIME = timedelta(
        hours=int(os.getenv("SESSION_LIFETIME_HOURS", "24"))
    )

    DEFAULT_TIME_ZONE = os.getenv("DEFAULT_TIME_ZONE", "America/Sao_Paulo")
    DEFAULT_KCAL_GOAL = int(os.getenv("DEFAULT_KCAL_GOAL", "2000"))
    DEFAULT_WATER_GOAL_ML = int(os.getenv("DEFAULT_WATER_GOAL_ML", "2000"))
    STEPS_GOAL = int(os.getenv("STEPS_GOAL", "10000"))

    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    # Any OpenAI-compatible endpoint works here (Gemini exposes one as well).
    OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or None
    AI_FOOD_MODELS = parse_model_list(
        os.getenv("AI_FOOD_MODELS", "gpt-4.1-mini,gpt-4.1-nano,gpt-4o-mini,gpt-4o")
    )
    AI_FOOD_LANGUAGE = os.getenv("AI_FOOD_LANGUAGE", "Portuguese (PT-BR)")

    STORAGE_URL = (os.getenv("STORAGE_URL") or "").rstrip("/") or None
    STORAGE_SERVICE_KEY = os.getenv("STORAGE_SERVICE_KEY")
    PROGRESS_PHOTO_BUCKET = os.getenv("PROGRESS_PHOTO_BUCKET", "progress-photos")
