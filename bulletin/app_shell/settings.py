import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("BULLETIN_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "bulletin.db")
        self.migrations_dir = str(self.base_dir / "migrations")
        self.rules_path = Path(
            os.environ.get("BULLETIN_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
