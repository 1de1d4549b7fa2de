import io
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

import fncli
import pytest

from cadence import config, db
from cadence.core.errors import CadenceError
from cadence.lib import clock

FIXED_TODAY = date(2024, 6, 12)


@pytest.fixture
def tmp_cadence_dir(tmp_path, monkeypatch):
    """Point config and the database at a throwaway directory."""
    home = tmp_path / ".cadence"
    home.mkdir()
    monkeypatch.setattr(config, "CADENCE_DIR", home)
    monkeypatch.setattr(config, "DB_PATH", home / "store.db")
    monkeypatch.setattr(config, "CONFIG_PATH", home / "config.yaml")
    monkeypatch.setattr(config, "BACKUP_DIR", tmp_path / "backups")
    monkeypatch.setattr(config._config, "_data", {})
    monkeypatch.setenv("NO_COLOR", "1")
    db.init()
    return home


@pytest.fixture
def fixed_today(monkeypatch):
    """Freeze the clock at FIXED_TODAY, noon."""
    frozen = datetime.combine(FIXED_TODAY, datetime.min.time()).replace(hour=12)
    monkeypatch.setattr(clock, "now", lambda: frozen)
    return FIXED_TODAY


@dataclass
class Result:
    exit_code: int
    stdout: str
    stderr: str


class FnCLIRunner:
    """Dispatch `cadence ...` in-process with the same error mapping as cli.main."""

    _discovered = False

    def __init__(self) -> None:
        if not FnCLIRunner._discovered:
            fncli.autodiscover(Path(db.__file__).parent, "cadence")
            FnCLIRunner._discovered = True

    def invoke(self, args: list[str]) -> Result:
        out, err = io.StringIO(), io.StringIO()
        code = 0
        with redirect_stdout(out), redirect_stderr(err):
            try:
                code = fncli.dispatch(["cadence", *args])
            except CadenceError as e:
                err.write(f"{e}\n")
                code = 1
            except SystemExit as e:
                code = int(e.code) if e.code is not None else 1
        return Result(code, out.getvalue(), err.getvalue())
