from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

LOG_LEVEL_VAR = "D2P_PAK_LOG"
OUTPUT_DIR_VAR = "D2P_PAK_OUTPUT"


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    output_dir: Optional[Path] = None


def load_settings() -> Settings:
    """Read settings from the environment, after loading a `.env` file if one exists."""
    load_dotenv()
    output_dir = os.getenv(OUTPUT_DIR_VAR)
    return Settings(
        log_level=os.getenv(LOG_LEVEL_VAR, "INFO").upper(),
        output_dir=Path(output_dir) if output_dir else None,
    )
