from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

DEFAULT_PORT = 5001
DEFAULT_BACKEND_URL = "https://nutrivision-ai.onrender.com"
DEV_JWT_SECRET = "dev-secret-change-me"


class Settings:
    """Centralized configuration for the NutriVision client and backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        # ---- Client (transport/session/oauth) ----
        backend_url = os.environ.get("NUTRIVISION_BACKEND_URL") or DEFAULT_BACKEND_URL
        self.backend_url: str = backend_url.rstrip("/")
        self.api_base_url: str = f"{self.backend_url}/api"
        self.request_timeout: float = float(os.environ.get("NUTRIVISION_REQUEST_TIMEOUT") or "30")
        session_file = (os.environ.get("NUTRIVISION_SESSION_FILE") or "").strip()
        self.session_file: Optional[Path] = Path(session_file).expanduser() if session_file else None
        self.google_client_id: str = os.environ.get("GOOGLE_CLIENT_ID") or ""
        self.apple_client_id: str = os.environ.get("APPLE_CLIENT_ID") or ""
        self.apple_redirect_uri: str = os.environ.get("APPLE_REDIRECT_URI") or self.backend_url
        self.oauth_timeout: float = float(os.environ.get("NUTRIVISION_OAUTH_TIMEOUT") or "120")

        # ---- Backend (bootstrap/auth/meals) ----
        self.host: str = os.environ.get("NUTRIVISION_HOST") or os.environ.get("HOST") or "0.0.0.0"
        # Kept as the raw string; the bootstrap validates and reports bad values.
        self.port_raw: str = os.environ.get("NUTRIVISION_PORT") or os.environ.get("PORT") or str(DEFAULT_PORT)
        self.port_attempts: int = int(os.environ.get("NUTRIVISION_PORT_ATTEMPTS") or "10")
        self.data_root: Path = Path(
            os.environ.get("NUTRIVISION_DATA_ROOT") or data_root_default
        ).expanduser()
        self.db_path: Path = Path(
            os.environ.get("NUTRIVISION_DB_PATH") or (self.data_root / "nutrivision.db")
        ).expanduser()
        self.db_timeout: float = float(os.environ.get("NUTRIVISION_DB_TIMEOUT") or "5")
        # In production you MUST set NUTRIVISION_JWT_SECRET; the bootstrap warns when it is missing.
        self.jwt_secret: str = os.environ.get("NUTRIVISION_JWT_SECRET") or DEV_JWT_SECRET
        self.token_ttl_days: int = int(os.environ.get("NUTRIVISION_TOKEN_TTL_DAYS") or "7")

        cors = os.environ.get("NUTRIVISION_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]

    @property
    def jwt_secret_is_default(self) -> bool:
        return self.jwt_secret == DEV_JWT_SECRET


settings = Settings()
