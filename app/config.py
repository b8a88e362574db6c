# app/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./gatepass.db"

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_IP: str = "0.0.0.0"
    BACKEND_PORT: int = 8080

    # ── Verification links ────────────────────────────────────────────────
    PUBLIC_ORIGIN: str = "http://localhost:8080"   # Origin printed into every QR code
    BASE_PATH: str = "/"                            # e.g. /tukconnect-v2
    USE_LAN_ORIGIN: bool = False                    # Dev: let phones on the LAN open links
    LAN_ORIGIN: str = "http://192.168.0.111"        # Port is copied from PUBLIC_ORIGIN if omitted

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to enable auth on API endpoints

    # ── Verification ──────────────────────────────────────────────────────
    TIMEZONE: str = "Asia/Kuala_Lumpur"             # Defines the "calendar day" of a pass
    STORE_QUERY_TIMEOUT_SECONDS: float = 5.0

    # ── Pass images ───────────────────────────────────────────────────────
    QR_MIN_SIZE_PX: int = 256
    PASS_TITLE: str = "Tijani Ukay Visitor Pass"

    # ── Guard-post scanner ────────────────────────────────────────────────
    SCANNER_CAMERA_SOURCE: str = "0"                # Device index or rtsp:// URL
    SCANNER_FRAME_INTERVAL: float = 1 / 30          # Seconds between decode ticks

    # ── Sharing ───────────────────────────────────────────────────────────
    SHARE_WEBHOOK_URL: Optional[str] = None         # Messaging gateway; unset = download only
    SHARE_TIMEOUT_SECONDS: float = 10.0

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None                   # Defaults to <repo>/logs

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
