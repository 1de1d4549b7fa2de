import logging

import pytest

from cadence.lib.log import setup_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(False)


def test_file_gets_debug_console_gets_warnings(tmp_path, capsys, restore_root_logging):
    setup_logging(verbose=False, log_dir=tmp_path)

    log = logging.getLogger("cadence.tasks")
    log.debug("quiet detail")
    log.warning("loud problem")
    logging.getLogger("urllib3").warning("third party chatter")

    err = capsys.readouterr().err
    assert "loud problem" in err
    assert "quiet detail" not in err
    assert "third party chatter" not in err
    text = (tmp_path / "cadence.log").read_text()
    assert "quiet detail" in text
    assert "loud problem" in text


def test_verbose_console_shows_debug(tmp_path, capsys, restore_root_logging):
    setup_logging(verbose=True, log_dir=tmp_path)
    logging.getLogger("cadence.db").debug("applied migration 001_init")
    assert "applied migration 001_init" in capsys.readouterr().err
