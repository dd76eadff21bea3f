from __future__ import annotations

from alembic import command
from alembic.config import Config

ALEMBIC_INI = "alembic.ini"


def run_upgrade_head(revision: str = "head") -> None:
    config = Config(ALEMBIC_INI)
    command.upgrade(config, revision)


if __name__ == "__main__":
    run_upgrade_head()
