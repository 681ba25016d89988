"""
配置文件 - 项目配置管理
"""
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)

    # 日志配置: console | json
    LOG_FORMAT: str = Field(default="console")

    # REPL history file. Unset -> ~/.grpcc_history, empty -> disabled
    HISTORY: Optional[str] = Field(default=None)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_prefix="GRPCC_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("LOG_FORMAT", mode="before")
    @classmethod
    def _normalize_log_format(cls, v):
        s = str(v or "console").strip().lower()
        if s not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")
        return s

    @property
    def history_path(self) -> Optional[Path]:
        """Resolved history file, or None when persistence is disabled."""
        if self.HISTORY is None:
            return Path.home() / ".grpcc_history"
        if self.HISTORY == "":
            return None
        return Path(self.HISTORY).expanduser()


settings = Settings()
