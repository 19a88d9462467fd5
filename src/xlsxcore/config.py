"""Configuration management for xlsxcore."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _parse_bool(name: str, default: str) -> bool:
    """Parse a boolean flag from an environment variable."""
    return os.getenv(name, default).lower() == "true"


class Settings(BaseModel):
    """Library settings."""

    # Sheet limits (Excel 2007+ grid)
    total_rows: int = int(os.getenv("TOTAL_ROWS", "1048576"))
    max_columns: int = int(os.getenv("MAX_COLUMNS", "16384"))

    # Decryption guards
    max_spin_count: int = int(os.getenv("MAX_SPIN_COUNT", "10000000"))  # Reject absurd agile spin counts
    verify_password: bool = _parse_bool("VERIFY_PASSWORD", "true")  # Check the verifier before decrypting
    truncate_to_declared_size: bool = _parse_bool("TRUNCATE_TO_DECLARED_SIZE", "true")

    # Logging (only the CLI installs handlers)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
