from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Blog API"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = """
    REST backend for a social blogging application.

    ## Features
    * User registration and token based authentication
    * Profiles, profile pictures and follow relationships
    * Post creation and management with image uploads
    * Likes
    """
    DOCS_URL: str = "/docs"
    REDOC_URL: str = "/redoc"
    OPENAPI_URL: str = "/openapi.json"
    OPENAPI_TAGS: list[dict] = [
        {
            "name": "user",
            "description": "Registration, login, profiles, profile pictures and follows"
        },
        {
            "name": "posts",
            "description": "Post creation, retrieval, images and likes"
        },
    ]

    # CORS
    CORS_ALLOWED_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost"]

    # Database
    DB_USER: str = "postgres"
    DB_PASS: str = "postgres"
    DB_NAME: str = "blog"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_URL: str | None = None
    DB_ECHO: bool = False

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL:
            return self.DB_URL
        return f"postgresql://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7

    # File Upload
    UPLOAD_FOLDER: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_SIZE: int = 10_485_760  # 10MB
    ALLOWED_IMAGE_TYPES: list[str] = ["jpg", "jpeg", "png", "gif", "webp"]
    MAX_POST_IMAGES: int = 5
    PROFILE_PICTURE_SIZE: int = 256

    # Pagination
    DEFAULT_PAGE_SIZE: int = 6
    MAX_PAGE_SIZE: int = 100

    # Accounts
    MIN_PASSWORD_LENGTH: int = 6
    PASSWORD_HASH_ROUNDS: int = 12

    # Email Settings
    EMAIL_ENABLED: bool = True
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 1025
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_STARTTLS: bool = False
    EMAIL_FROM_NAME: str = "Blog"
    EMAIL_FROM_ADDRESS: str = "no-reply@localhost"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # console | json

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    # Get the current file's directory
    current_dir = Path(__file__).resolve().parent
    # Go up one level to the project root
    project_dir = current_dir.parent

    # Initialize settings with explicit .env path
    return Settings(_env_file=project_dir / ".env")
