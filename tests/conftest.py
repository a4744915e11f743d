from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from learning_progress.core.errors import StorageUnavailable
from learning_progress.main import app
from learning_progress.services import token_service
from learning_progress.services.catalog import course_catalog, seed_sample_catalog
from learning_progress.services.progress_store import progress_backend

# Ensure repo root is on sys.path so `import learning_progress` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_progress_store() -> None:
    """Clear every stored completion and activity key between tests."""
    if hasattr(progress_backend, "_store"):
        progress_backend._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_catalog() -> None:
    """Restore the sample catalog so tests that add modules don't bleed."""
    course_catalog.clear()
    seed_sample_catalog(course_catalog)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    """Token with admin role."""
    return mint_token(username="test-admin", roles=["admin"])


class UnavailableStore:
    """KeyValueStore whose backend is always down."""

    def __init__(self) -> None:
        self.calls = 0

    async def _fail(self) -> None:
        self.calls += 1
        raise StorageUnavailable("connection refused")

    async def get(self, key: str) -> str | None:
        await self._fail()
        return None

    async def set(self, key: str, value: str) -> None:
        await self._fail()

    async def incr_by(self, key: str, amount: int) -> int:
        await self._fail()
        return 0

    async def scan(self, prefix: str) -> dict[str, str]:
        await self._fail()
        return {}
