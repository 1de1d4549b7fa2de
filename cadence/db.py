# cadence/db.py
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from fncli import cli

from . import config
from .lib.errors import echo

MIGRATIONS_TABLE = "_migrations"
MIGRATIONS_DIR = Path(__file__).parent / "migrations"

Migration = tuple[str, str]

logger = logging.getLogger(__name__)


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def get_db(db_path: Path | None = None):
    db_path = db_path if db_path else config.DB_PATH
    conn = _connect(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _create_backup(db_path: Path) -> Path:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    mig_dir = config.BACKUP_DIR / "migrations"
    mig_dir.mkdir(parents=True, exist_ok=True)
    backup_path = mig_dir / f"cadence.{timestamp}.backup"
    src = sqlite3.connect(db_path, timeout=30)
    dst = sqlite3.connect(backup_path)
    try:
        src.backup(dst)
    except Exception:
        dst.close()
        src.close()
        if backup_path.exists():
            backup_path.unlink()
        raise
    else:
        dst.close()
        src.close()
    return backup_path


def _restore_backup(backup_path: Path, conn: sqlite3.Connection) -> None:
    """Copy the backup back into the live connection so WAL frames stay consistent."""
    logger.warning("restoring database from %s", backup_path)
    src = sqlite3.connect(backup_path)
    try:
        src.backup(conn)
    finally:
        src.close()


def _table_count(conn: sqlite3.Connection, table: str) -> int:
    try:
        return conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0]  # noqa: S608
    except sqlite3.OperationalError:
        return 0


def _check_data_loss(conn: sqlite3.Connection, before: dict[str, int]) -> None:
    for table, count in before.items():
        after = _table_count(conn, table)
        if after < count:
            raise ValueError(f"migration data loss: {table} had {count} rows, now {after}")


def load_migrations(migrations_dir: Path | None = None) -> list[Migration]:
    migrations_dir = migrations_dir if migrations_dir else MIGRATIONS_DIR
    if not migrations_dir.exists():
        return []
    return [(sql_file.stem, sql_file.read_text()) for sql_file in sorted(migrations_dir.glob("*.sql"))]


def _user_tables(conn: sqlite3.Connection) -> list[str]:
    return [
        row[0]
        for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name != ? AND name NOT LIKE 'sqlite_%'",
            (MIGRATIONS_TABLE,),
        ).fetchall()
    ]


def _apply_migrations(conn: sqlite3.Connection, db_path: Path) -> list[str]:
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} "
        "(id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL UNIQUE, applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
    )
    conn.commit()

    applied = {row[0] for row in conn.execute(f"SELECT name FROM {MIGRATIONS_TABLE}").fetchall()}  # noqa: S608
    pending = [(n, sql) for n, sql in load_migrations() if n not in applied]
    if not pending:
        return []

    backup_path: Path | None = None
    if db_path.exists() and _user_tables(conn):
        backup_path = _create_backup(db_path)

    done: list[str] = []
    for name, sql in pending:
        before = {t: _table_count(conn, t) for t in _user_tables(conn)}
        try:
            conn.executescript(sql)
            _check_data_loss(conn, before)
            conn.execute(f"INSERT OR IGNORE INTO {MIGRATIONS_TABLE} (name) VALUES (?)", (name,))  # noqa: S608
            conn.commit()
        except Exception:
            logger.exception("migration %s failed", name)
            conn.rollback()
            if backup_path:
                _restore_backup(backup_path, conn)
            raise
        logger.info("applied migration %s", name)
        done.append(name)

    if backup_path and backup_path.exists():
        backup_path.unlink()
    return done


def init(db_path: Path | None = None) -> None:
    db_path = db_path if db_path else config.DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = _connect(db_path)
    try:
        _apply_migrations(conn, db_path)
    finally:
        conn.close()


@cli("cadence db", name="migrate")
def db_migrate():
    """Run pending database migrations"""
    db_path = config.DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with get_db(db_path) as conn:
        applied = _apply_migrations(conn, db_path)
    echo(f"applied: {', '.join(applied)}" if applied else "up to date")


@cli("cadence db", name="path")
def db_path_cmd():
    """Print database location"""
    echo(str(config.DB_PATH))
