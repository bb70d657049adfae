"""
Global test fixtures for the entity mixin.

This module provides shared fixtures for all tests including:
- Test settings with an in-memory store and a fixed salt
- Id codec
- JWT token factory
"""

import sys
from pathlib import Path
from typing import Callable

import pytest
from bson import ObjectId

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

TEST_SALT = "unit-test-salt"


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """
    Settings for unit tests.

    Test mode selects the in-memory store; the salt is fixed so encoded ids
    are stable within a test.
    """
    from entity_mixin.config import Settings

    return Settings(
        _env_file=None,
        environment="test",
        hashid_salt=TEST_SALT,
        local_store_dir=None,
    )


@pytest.fixture
def file_settings(tmp_path):
    """Settings selecting the file-backed store under a temp directory."""
    from entity_mixin.config import Settings

    return Settings(
        _env_file=None,
        environment="development",
        hashid_salt=TEST_SALT,
        local_store_dir=str(tmp_path / "data"),
    )


# =============================================================================
# Codec Fixtures
# =============================================================================

@pytest.fixture
def codec():
    """Id codec using the test salt."""
    from entity_mixin.core.codec import IdCodec

    return IdCodec(TEST_SALT)


@pytest.fixture
def object_id() -> ObjectId:
    """A fixed internal id."""
    return ObjectId("507f1f77bcf86cd799439011")


# =============================================================================
# Token Fixtures
# =============================================================================

@pytest.fixture
def make_token() -> Callable[..., str]:
    """
    Factory for JWT tokens with the given permission tags.

    Usage:
        def test_something(make_token):
            token = make_token(["accounts.create"])
    """
    from entity_mixin.core.security import create_access_token

    def _make(permissions: list[str], subject: str = "tester") -> str:
        return create_access_token(subject=subject, permissions=permissions)

    return _make
