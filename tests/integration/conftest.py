import os
import uuid
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from app.config.settings import Settings
from app.database.connection import close_pool, get_connection, init_pool
from app.database.models import Upload, UploadKind
from app.database.repositories.upload_repository import UploadRepository

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "app" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "contract_analysis_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
    except Exception as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[dict[str, list[Any]], None, None]:
    cleanup: dict[str, list[Any]] = {"keys": [], "roles": [], "users": []}
    yield cleanup
    with get_connection() as conn:
        with conn.cursor() as cur:
            for key in cleanup["keys"]:
                cur.execute("DELETE FROM analysis_records WHERE correlation_key = %s", (key,))
                cur.execute("DELETE FROM uploads WHERE correlation_key = %s", (key,))
            for user_id in cleanup["users"]:
                cur.execute("DELETE FROM user_roles WHERE user_id = %s", (user_id,))
            for role_name in cleanup["roles"]:
                cur.execute("DELETE FROM roles WHERE name = %s", (role_name,))
        conn.commit()


@pytest.fixture
def unique_user_id() -> int:
    """A user id no other test run is likely to touch."""
    return 1_000_000 + uuid.uuid4().int % 1_000_000


@pytest.fixture
def seed_pair(
    integration_cleanup: dict[str, list[Any]],
) -> Callable[[int], tuple[Upload, Upload]]:
    """Insert a contract/data upload pair for an owner under a fresh key."""

    def _seed(owner_id: int) -> tuple[Upload, Upload]:
        key = f"job_test_{uuid.uuid4()}"
        integration_cleanup["keys"].append(key)
        repo = UploadRepository()
        contract = repo.create(
            correlation_key=key,
            kind=UploadKind.CONTRACT,
            filename="contract.pdf",
            byte_size=1024,
            mime_type="application/pdf",
            owner_id=owner_id,
            storage_key=f"{owner_id}/{uuid.uuid4().hex}",
            file_hash_sha256="a" * 64,
        )
        data = repo.create(
            correlation_key=key,
            kind=UploadKind.DATA,
            filename="data.csv",
            byte_size=64,
            mime_type="text/csv",
            owner_id=owner_id,
            storage_key=f"{owner_id}/{uuid.uuid4().hex}",
            file_hash_sha256="b" * 64,
        )
        return contract, data

    return _seed
