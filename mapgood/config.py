"""
mapgood configuration — all environment variables in one place.

Read from environment at import time. Every value has a default.
"""

from __future__ import annotations

import os


class Settings:
    """Client settings from environment variables."""

    # Place search (Nominatim)
    NOMINATIM_URL: str = os.environ.get("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")

    # Entries search (OpenFairDB)
    OFDB_URL: str = os.environ.get("OFDB_URL", "https://api.ofdb.io/v0/search")
    OFDB_CATEGORIES: str = os.environ.get(
        "OFDB_CATEGORIES",
        "2cd00bebec0c48ba9db761da48678134,77b3c33a92554bcf8e8c2c86cedd6f6f",
    )

    # HTTP
    HTTP_TIMEOUT_SECONDS: float = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "10.0"))
    USER_AGENT: str = os.environ.get("USER_AGENT", "mapgood/0.1 (+https://github.com/mapgood)")

    # Map bridge
    VIEWPORT_SETTLE_MS: int = int(os.environ.get("VIEWPORT_SETTLE_MS", "15"))

    @property
    def entry_categories(self) -> list[str]:
        return [c.strip() for c in self.OFDB_CATEGORIES.split(",") if c.strip()]

    @property
    def viewport_settle_seconds(self) -> float:
        return self.VIEWPORT_SETTLE_MS / 1000


# Singleton instance
settings = Settings()
