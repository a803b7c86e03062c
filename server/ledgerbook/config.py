import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ledgerbook.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS).split(",") if origin.strip()]
