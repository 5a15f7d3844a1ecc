from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Kriss Beauty Nails API"

    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = ""
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Database
    DATABASE_URL: str = "sqlite:///./salon.db"

    # Security
    JWT_SECRET: str = "dev_secret_key"
    JWT_REFRESH_SECRET: str = "dev_refresh_secret_key"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    # "Name:email:password" entries separated by ";"
    SEED_ADMINS: str = ""

    # Rate limiting
    RATE_LIMIT_REQUESTS: int = 1000
    RATE_LIMIT_WINDOW_SECONDS: int = 900

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024
    THUMBNAIL_THRESHOLD: int = 500000

    # Scheduling
    TIMEZONE: str = "America/Guayaquil"

    # Google Drive
    GOOGLE_CREDENTIALS_JSON: str = ""
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REFRESH_TOKEN: str = ""
    GOOGLE_DRIVE_GALLERY_FOLDER_ID: str = ""
    GOOGLE_DRIVE_SERVICES_FOLDER_ID: str = ""
    GOOGLE_DRIVE_BEFORE_AFTER_FOLDER_ID: str = ""
    GOOGLE_DRIVE_DEFAULT_FOLDER_ID: str = ""

    # WhatsApp Cloud API
    WHATSAPP_CLOUD_API_TOKEN: str = ""
    WHATSAPP_PHONE_NUMBER_ID: str = ""

    # Notifications
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
