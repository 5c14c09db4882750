import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from bulletin.adapters.clock import FixedClock
from bulletin.adapters.dev_provider import create_dev_messaging_provider
from bulletin.adapters.sqlite.migrator import SQLiteMigrator
from bulletin.adapters.sqlite_db import SQLiteContentRepo
from bulletin.app_shell.context import ServiceContext
from bulletin.domain.entities import ContentItem
from bulletin.rules.loader import load_rules

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def db_path(tmp_path) -> str:
    """Temporary database with all migrations applied."""
    path = str(tmp_path / "bulletin.db")
    SQLiteMigrator(path, str(PROJECT_ROOT / "migrations")).run_migrations()
    return path


@pytest.fixture
def rules():
    # Real rules from the project root
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def provider():
    return create_dev_messaging_provider(log_level=logging.DEBUG)


@pytest.fixture
def test_ctx(db_path, rules, provider, clock) -> ServiceContext:
    """Full ServiceContext backed by a temporary SQLite DB and the dev provider."""
    return ServiceContext.create(db_path, rules, provider=provider, clock=clock)


@pytest.fixture
def seed_content(db_path, clock):
    """
    Insert published news items.

    Returns a function taking ``(id, affinity, **fields)`` tuples; later
    ids are created more recently.
    """
    repo = SQLiteContentRepo(db_path)

    def _seed(*specs: tuple) -> list[ContentItem]:
        items = []
        for spec in specs:
            item_id, affinity, *rest = spec
            fields = rest[0] if rest else {}
            item = ContentItem(
                id=item_id,
                title=f"Story {item_id}",
                display_affinity=affinity,
                created_at=clock.now_utc() - timedelta(hours=1000 - item_id),
                **fields,
            )
            items.append(repo.save(item))
        return items

    return _seed
