"""python -m resolvebot.core 命令测试"""

import pytest

from resolvebot.core.__main__ import main


@pytest.fixture
def db_env(tmp_path, monkeypatch):
    db_path = tmp_path / "cli" / "resolvebot.db"
    monkeypatch.setenv("RESOLVEBOT_DB_PATH", str(db_path))
    return db_path


def _run(monkeypatch, *args: str) -> None:
    monkeypatch.setattr("sys.argv", ["resolvebot.core", *args])
    main()


class TestCli:
    def test_init_db_creates_database(self, db_env, monkeypatch, capsys):
        _run(monkeypatch, "init-db")

        assert db_env.exists()
        assert "现有任务 0 条" in capsys.readouterr().out

    def test_due_on_empty_database(self, db_env, monkeypatch, capsys):
        _run(monkeypatch, "due")

        assert "没有需要提醒的任务" in capsys.readouterr().out

    def test_missing_command_exits(self, monkeypatch):
        with pytest.raises(SystemExit) as exc_info:
            _run(monkeypatch)
        assert exc_info.value.code == 1

    def test_unknown_command_exits(self, db_env, monkeypatch, capsys):
        with pytest.raises(SystemExit):
            _run(monkeypatch, "migrate")
        assert "未知命令: migrate" in capsys.readouterr().out
