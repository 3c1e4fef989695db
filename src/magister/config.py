"""Server configuration loaded from environment variables.

All settings use the MAGISTER_ prefix, e.g. MAGISTER_SCHOOL=myschool.magister.net.
The password is read from MAGISTER_PASS (MAGISTER_PASSWORD also works).
"""

from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings

from src.magister.models import MagisterConfig


class Settings(BaseSettings):
    """Server configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Magister account (browser-only login, no public API)
    school: str = Field(
        default="",
        description="School host or code, e.g. 'myschool.magister.net' or 'myschool'",
    )
    user: str = Field(
        default="",
        description="Magister username",
    )
    password: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("MAGISTER_PASS", "MAGISTER_PASSWORD"),
        description="Magister password",
    )

    # Paths
    auth_state_path: Path = Field(
        default=Path(".auth-state.json"),
        description="Persisted Playwright storage state plus subject id and token",
    )
    cache_path: Path = Field(
        default=Path(".schedule-cache.json"),
        description="Persisted schedule cache",
    )
    screenshot_dir: Path | None = Field(
        default=None,
        description="If set, login debug screenshots are written here",
    )

    # Browser
    headless: bool = Field(
        default=True,
        description="Run Chromium without a visible window",
    )

    # Schedule
    timezone: str = Field(
        default="Europe/Amsterdam",
        description="Timezone used to render lesson start/end times",
    )

    # Logging
    log_file: Path | None = Field(
        default=Path("/tmp/magister-mcp.log"),
        description="Append-only log file (also mirrored to stderr)",
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "MAGISTER_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    def client_config(self) -> MagisterConfig:
        """Build the immutable login configuration.

        Raises:
            ValueError: If school, user or password is missing.
        """
        missing = [
            name
            for name, value in (
                ("MAGISTER_SCHOOL", self.school),
                ("MAGISTER_USER", self.user),
                ("MAGISTER_PASS", self.password.get_secret_value()),
            )
            if not value
        ]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        return MagisterConfig(
            school=self.school,
            username=self.user,
            password=self.password,
        )

    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


# Singleton pattern
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the settings singleton.

    Returns:
        Settings: Server configuration instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
