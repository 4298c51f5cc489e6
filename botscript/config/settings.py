"""
Bot Script Builder - Configuration Settings
Root node, cycle policy, id issuance, emitter formatting, and canvas defaults.
"""

from typing import Optional, Literal
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Bot script builder settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Platform ──────────────────────────────────────────────────────
    environment: str = Field(default="dev", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # ── Compiler ──────────────────────────────────────────────────────
    root_node_id: str = Field(default="1", alias="BOTSCRIPT_ROOT_NODE_ID")
    cycle_policy: Literal["back_reference", "reject"] = Field(
        default="back_reference", alias="BOTSCRIPT_CYCLE_POLICY",
    )
    id_prefix: str = Field(default="id_", alias="BOTSCRIPT_ID_PREFIX")
    default_document_url: str = Field(
        default="https://example.com", alias="BOTSCRIPT_DEFAULT_DOCUMENT_URL",
    )

    # ── Emitter ───────────────────────────────────────────────────────
    json_indent: Optional[int] = Field(default=None, alias="BOTSCRIPT_JSON_INDENT")

    # ── Canvas Defaults ───────────────────────────────────────────────
    copy_offset_x: float = Field(default=250.0, alias="BOTSCRIPT_COPY_OFFSET_X")
    copy_offset_y: float = Field(default=150.0, alias="BOTSCRIPT_COPY_OFFSET_Y")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ["dev", "development", "qa", "uat", "prod"]
        if v.lower() not in allowed:
            print(f"[SETTINGS] Warning: environment '{v}' not in {allowed}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return v.upper()


settings = Settings()
