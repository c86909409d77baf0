"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for settings validation (SQLite, no Redis needed)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("ROOT_INVITE_CODE", "FINGROW")
os.environ.setdefault("SUPPORTED_CURRENCIES", "THB,USD")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from fingrow.services.core_config import CoreConfig


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.delete = MagicMock()
    session.refresh = AsyncMock()
    return session


@pytest.fixture
def core_config():
    """
    Seven-level referral program: 10%, 5%, 3%, then 1% down to level 7.

    Returns:
        CoreConfig: Config used by every service under test
    """
    return CoreConfig(
        referral_max_depth=7,
        referral_rates={
            1: Decimal("0.10"),
            2: Decimal("0.05"),
            3: Decimal("0.03"),
            4: Decimal("0.01"),
            5: Decimal("0.01"),
            6: Decimal("0.01"),
            7: Decimal("0.01"),
        },
        root_invite_code="FINGROW",
        allow_cancel_after_shipment=False,
        auto_delivery_days=14,
    )
