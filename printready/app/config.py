"""
Centralized configuration for the PDF/X-3 conversion core.

Pydantic v2 settings management: values are parsed once from the
environment (prefix ``PRINTREADY_``), validated strictly, and frozen for
the lifetime of the process.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Bundled interpreter payload and ICC presets live beside the application code.
DEFAULT_ASSET_DIR = Path(__file__).resolve().parent / "assets"


class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Per-conversion options (profile selection, titles, output-intent
    metadata) are NOT configured here; see ``ConversionOptions``.
    """

    # ---------------------------------------------------------------------
    # Asset resolution
    # ---------------------------------------------------------------------

    asset_dir: Annotated[
        Path,
        Field(
            default=DEFAULT_ASSET_DIR,
            description=(
                "Directory holding gs.wasm and the bundled ICC presets, "
                "used by the filesystem asset loader"
            ),
        ),
    ]

    asset_path: Annotated[
        Optional[str],
        Field(
            default=None,
            description=(
                "Base URL the assets are served from. Required when running "
                "inside a browser (Pyodide) runtime."
            ),
        ),
    ]

    asset_fetch_timeout_seconds: Annotated[
        float,
        Field(
            default=30.0,
            gt=0,
            description="HTTP timeout for fetching assets over the network",
        ),
    ]

    # ---------------------------------------------------------------------
    # Interpreter lifecycle
    # ---------------------------------------------------------------------

    load_timeout_seconds: Annotated[
        float,
        Field(
            default=30.0,
            gt=0,
            description="Hard limit for loading the interpreter module",
        ),
    ]

    working_dir: Annotated[
        str,
        Field(
            default="/tmp/pdfx",
            pattern=r"^/",
            description="Absolute root of the staging tree in the virtual filesystem",
        ),
    ]

    verify_output: Annotated[
        bool,
        Field(
            default=True,
            description=(
                "Verify PDF/X-3 identification and OutputIntent of every "
                "produced document before returning it"
            ),
        ),
    ]

    # ---------------------------------------------------------------------
    # HTTP surface
    # ---------------------------------------------------------------------

    max_upload_mb: Annotated[
        int,
        Field(
            default=100,
            ge=1,
            le=100,
            description="Upload limit of the HTTP surface (max 100MB)",
        ),
    ]

    model_config = SettingsConfigDict(
        env_prefix="PRINTREADY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
