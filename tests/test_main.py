"""
Tests for the command-line entry point.
"""

import builtins
import logging

import pytest

import main
from cafe import accounts
from cafe.db import Database


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def no_input(monkeypatch):
    def _eof(prompt=""):
        raise EOFError
    monkeypatch.setattr(builtins, "input", _eof)
    monkeypatch.setenv("CAFE_BCRYPT_ROUNDS", "4")
    monkeypatch.delenv("CAFE_LOG_FILE", raising=False)


class TestMain:
    """Tests for main.main()"""

    @pytest.mark.parametrize("argv", [[], ["cafe.db"], ["cafe.db", "5432"], ["a", "b", "c", "d"]])
    def test_usage(self, argv, capsys):
        assert main.main(argv) == 2
        assert "usage:" in capsys.readouterr().err

    def test_bad_port(self, capsys):
        assert main.main(["cafe.db", "port", "me"]) == 2
        assert "invalid port" in capsys.readouterr().err

    def test_connect_failure_exits_nonzero(self, tmp_path, no_input, capsys):
        code = main.main([str(tmp_path / "nope" / "cafe.db"), "5432", "me"])
        assert code == 1
        assert "Unable to Connect" in capsys.readouterr().err

    def test_graceful_exit_seeds_and_closes(self, tmp_path, no_input, capsys):
        path = str(tmp_path / "cafe.db")
        assert main.main([path, "5432", "me"]) == 0
        out = capsys.readouterr().out
        assert "Disconnecting from database..." in out
        assert "Bye !" in out
        with Database.connect(path) as db:
            assert accounts.authenticate_manager(db, "admin", "admin") is not None
            assert db.execute_scalar_count("SELECT 1 FROM MENU") > 0

    def test_log_file(self, tmp_path, no_input, monkeypatch):
        log_file = tmp_path / "cafe.log"
        monkeypatch.setenv("CAFE_LOG_FILE", str(log_file))
        monkeypatch.setenv("CAFE_LOG_LEVEL", "INFO")
        assert main.main([str(tmp_path / "cafe.db"), "5432", "me"]) == 0
        logging.getLogger().handlers[0].close()
        assert "connected to" in log_file.read_text(encoding="utf-8")

    def test_store_password_is_reported_as_unused(self, tmp_path, no_input, monkeypatch):
        log_file = tmp_path / "cafe.log"
        monkeypatch.setenv("CAFE_LOG_FILE", str(log_file))
        monkeypatch.setenv("CAFE_DB_PASSWORD", "hunter2")
        assert main.main([str(tmp_path / "cafe.db"), "5432", "me"]) == 0
        logging.getLogger().handlers[0].close()
        text = log_file.read_text(encoding="utf-8")
        assert "CAFE_DB_PASSWORD is set but sqlite stores take no password" in text
        assert "hunter2" not in text

    def test_greeting_banner(self, capsys):
        main.greeting()
        assert "café ordering client" in capsys.readouterr().out
