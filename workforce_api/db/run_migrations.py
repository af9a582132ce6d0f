"""
Programmatic Alembic migration runner.

Runs migrations without an alembic.ini by pointing Alembic at the migrations
directory shipped inside this package. The online path of env.py drives an
asyncpg engine with asyncio.run, so call this from a thread that has no running
event loop (the API startup hook uses asyncio.to_thread).

Usage examples:
    python -m workforce_api.db.run_migrations upgrade head
    python -m workforce_api.db.run_migrations downgrade -1
    python -m workforce_api.db.run_migrations history
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from workforce_api.db.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# command name -> (alembic function, default arguments)
_COMMANDS: Dict[str, tuple[Callable, List[str]]] = {
    "upgrade": (command.upgrade, ["head"]),
    "downgrade": (command.downgrade, ["-1"]),
    "history": (command.history, []),
    "current": (command.current, []),
    "heads": (command.heads, []),
    "show": (command.show, ["head"]),
}


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Alembic Config bound to the packaged migrations and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # Offline URL; env.py builds its own async engine for online runs.
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run an Alembic command (upgrade, downgrade, history, current, heads, show)."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    name, rest = args[0], args[1:]
    if name not in _COMMANDS:
        print(f"Unsupported Alembic command: {name}. Use one of: {', '.join(_COMMANDS)}")
        sys.exit(2)

    func, defaults = _COMMANDS[name]
    logger.info("alembic %s %s", name, " ".join(rest or defaults))
    func(build_config(), *(rest or defaults))


if __name__ == "__main__":
    main()
