"""
Centralized configuration for the invoice engine.

Settings are parsed from the environment (prefix INVOICER_) or a local
.env file, validated once, and frozen for the lifetime of the process.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

DocxFilename = Annotated[
    str,
    Field(
        pattern=r"^[A-Za-z0-9._-]+\.docx$",
        description="Bare .docx filename without directory components",
    ),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Invalid values fail fast at startup rather than on the first request.
    """

    # ---------------------------------------------------------------------
    # Template source
    # ---------------------------------------------------------------------

    template_path: Annotated[
        Path,
        Field(
            default=Path(__file__).resolve().parent.parent
            / "templates"
            / "invoice-template.docx",
            description="Fixed DOCX template, re-read on every request",
        ),
    ]

    # ---------------------------------------------------------------------
    # Output artifact sink
    # ---------------------------------------------------------------------

    output_dir: Annotated[
        Path,
        Field(
            default=Path("public"),
            description="Directory holding the most recently generated invoice",
        ),
    ]

    output_filename: DocxFilename = "latest-invoice.docx"

    download_prefix: Annotated[
        str,
        Field(
            default="AKT",
            pattern=r"^[A-Za-z0-9_-]*$",
            description="Prefix of the suggested download name: {prefix}-{eventID}.docx",
        ),
    ]

    # ---------------------------------------------------------------------
    # Pipeline behaviour
    # ---------------------------------------------------------------------

    strict_preview: Annotated[
        bool,
        Field(
            default=False,
            description=(
                "Treat preview conversion failure as fatal for the request. "
                "When false the document is returned with a preview error."
            ),
        ),
    ]

    max_amount: Annotated[
        Decimal,
        Field(
            default=Decimal("1000000000"),
            gt=0,
            description="Upper bound accepted for any single amount field",
        ),
    ]

    # ---------------------------------------------------------------------
    # HTTP server (python -m invoicer.app.main)
    # ---------------------------------------------------------------------

    host: str = "127.0.0.1"

    port: Annotated[int, Field(default=8000, ge=1, le=65535)]

    # ---------------------------------------------------------------------
    # Observability
    # ---------------------------------------------------------------------

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("template_path")
    @classmethod
    def template_must_be_docx(cls, v: Path) -> Path:
        if v.suffix.lower() != ".docx":
            raise ValueError(
                f"template_path must point to a .docx file, got '{v}'"
            )
        return v

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.output_filename

    model_config = SettingsConfigDict(
        env_prefix="INVOICER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Dependency injection provider for application settings.

    Tests override this through FastAPI's dependency_overrides.
    """
    return Settings()
