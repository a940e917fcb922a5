import os
import logging

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "robeDB")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))
PORT = int(os.getenv("PORT", 8000))

UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "robe_products")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _allowed_origins():
    origins = [
        "http://localhost:5173",
        "http://localhost:4173",
        "http://localhost:3000",
        os.getenv("FRONTEND_URL", "").strip(),
    ]
    extra = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if extra:
        for origin in extra.split(","):
            trimmed = origin.strip()
            if trimmed:
                origins.append(trimmed)
    return [origin for origin in origins if origin]


ALLOWED_ORIGINS = _allowed_origins()


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
