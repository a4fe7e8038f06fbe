from pydantic_settings import BaseSettings
from typing import List, Any
import json
import tempfile
from pathlib import Path


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "CodeSync"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 1234

    # CORS (stored as comma-separated string, parsed to list)
    CORS_ORIGINS_STR: str = "*"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./codesync.db"
    DB_ECHO: bool = False

    # ==========================================
    # Command execution
    # ==========================================
    COMMAND_TIMEOUT_MS: int = 5000
    SCRIPT_TIMEOUT_MS: int = 5000
    MAX_CONCURRENT_PROCESSES: int = 8  # Upper bound on simultaneously spawned processes
    SCRIPT_INTERPRETER: str = "python3"
    SCRIPT_TEMP_DIR: str = str(Path(tempfile.gettempdir()) / "codesync-scripts")

    # ==========================================
    # Projects
    # ==========================================
    PROJECTS_ROOT: str = "repos"  # Clone destination for ingested projects
    GIT_BINARY: str = "git"
    CLONE_TIMEOUT_SECONDS: int = 300
    CLONE_DEPTH: int = 1  # 0 means full history

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Initialize paths after pydantic validation
        self._projects_dir = Path(self.PROJECTS_ROOT).resolve()
        self._script_temp_dir = Path(self.SCRIPT_TEMP_DIR)

        # Create directories if they don't exist
        self._projects_dir.mkdir(exist_ok=True, parents=True)
        self._script_temp_dir.mkdir(exist_ok=True, parents=True)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    @property
    def PROJECTS_DIR(self) -> Path:
        return self._projects_dir

    @property
    def SCRIPT_DIR(self) -> Path:
        return self._script_temp_dir

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


# Create settings instance
settings = Settings()
