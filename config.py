import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _seconds(name: str):
    value = os.getenv(name)
    if not value:
        return None
    return float(value)


DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Image host (ImgBB compatible)
IMGBB_API_KEY = os.getenv("IMGBB_API_KEY", "")
IMAGE_HOST_URL = os.getenv("IMAGE_HOST_URL", "https://api.imgbb.com/1/upload")
IMAGE_UPLOAD_TIMEOUT = _seconds("IMAGE_UPLOAD_TIMEOUT")

# Only admit equality filters on known product fields
STRICT_FILTER_FIELDS = _flag("STRICT_FILTER_FIELDS")
