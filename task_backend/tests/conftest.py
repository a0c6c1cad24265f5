from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import AsyncIterator, Iterator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from task_api.db import Database
from task_api.main import create_app
from task_api.repositories import TaskRepository
from task_api.service import TaskService
from task_api.settings import get_settings


@pytest.fixture()
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "tasks.db")


@pytest_asyncio.fixture()
async def database(db_path: str) -> AsyncIterator[Database]:
    """A freshly initialized database with its own file per test."""
    db = Database(db_path, pool_size=4, acquire_timeout=5.0)
    await db.initialize()
    try:
        yield db
    finally:
        await db.close()


@pytest.fixture()
def repository(database: Database) -> TaskRepository:
    return TaskRepository(database)


@pytest.fixture()
def service(repository: TaskRepository) -> TaskService:
    return TaskService(repository)


@pytest.fixture()
def client(db_path: str) -> Iterator[TestClient]:
    """
    TestClient bound to an app whose lifespan opens a per-test database.
    """
    settings = replace(get_settings(), database_path=db_path, cors_allow_origins=["*"], log_file=None)
    with TestClient(create_app(settings)) as c:
        yield c
