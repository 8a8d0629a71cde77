"""Root pytest configuration.

Test Structure:
    tests/
    ├── unit/
    │   ├── domain/            # Value objects, dates, cataloguing
    │   ├── infrastructure/    # HTTP client, decoders, adapters
    │   └── application/       # Queries
    └── shared/                # Mock transports and page fixtures
"""

from pathlib import Path

import pytest
from dotenv import load_dotenv

from passbook_config import clear_settings_cache

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Load .env.dev for tests (same as local development)
CONFIG_DIR = PROJECT_ROOT / "config"
if (CONFIG_DIR / ".env.dev").exists():
    load_dotenv(CONFIG_DIR / ".env.dev")
elif (CONFIG_DIR / ".env").exists():
    load_dotenv(CONFIG_DIR / ".env")


@pytest.fixture(autouse=True)
def fresh_settings():
    """Clear cached settings so monkeypatched env vars take effect."""
    clear_settings_cache()
    yield
    clear_settings_cache()
