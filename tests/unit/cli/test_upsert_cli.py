"""Unit tests for the upsert command-line interface."""

import importlib
import json

import pytest

from upsert_all.io.loader import CHANGES, UpsertReturnType
from tests.fixtures.fake_db import FakeConnection, FakeEngine
from tests.fixtures.records import USERS_TABLE, user_row

cli_module = importlib.import_module("upsert_all.cli.main")


@pytest.fixture
def rows_file(tmp_path):
    path = tmp_path / "users.json"
    path.write_text(
        json.dumps([{"email": "a@example.com", "name": "A"}, {"email": "b@example.com"}]),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def fake_engine(monkeypatch):
    engine = FakeEngine(
        FakeConnection(
            responses=[
                [
                    user_row("inserted", 1, "a@example.com", name="A"),
                    user_row("unchanged", 2, "b@example.com"),
                ]
            ]
        )
    )
    monkeypatch.setattr(cli_module, "get_engine", lambda: engine)
    monkeypatch.setattr(
        cli_module, "reflect_table", lambda conn, table, schema="public": USERS_TABLE
    )
    return engine


@pytest.mark.unit
class TestLoadRows:
    def test_json_array(self, rows_file):
        assert cli_module.load_rows(rows_file)[0] == {"email": "a@example.com", "name": "A"}

    def test_json_lines(self, tmp_path):
        path = tmp_path / "users.jsonl"
        path.write_text('{"email": "a"}\n\n{"email": "b"}\n', encoding="utf-8")
        assert cli_module.load_rows(path) == [{"email": "a"}, {"email": "b"}]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("", encoding="utf-8")
        assert cli_module.load_rows(path) == []

    def test_non_object_rows_rejected(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError, match="JSON objects"):
            cli_module.load_rows(path)


@pytest.mark.unit
class TestParseReturning:
    def test_default(self):
        assert cli_module._parse_returning(None) == CHANGES

    def test_explicit_list(self):
        assert cli_module._parse_returning("inserted, unchanged") == {
            UpsertReturnType.INSERTED,
            UpsertReturnType.UNCHANGED,
        }

    def test_unknown_outcome(self):
        with pytest.raises(Exception, match="Unknown outcome"):
            cli_module._parse_returning("inserted,deleted")


@pytest.mark.unit
class TestUpsertCommand:
    def test_prints_outcome_counts(self, rows_file, fake_engine, capsys):
        rc = cli_module.main(
            [
                "upsert",
                "--table",
                "users",
                "--unique-by",
                "email",
                "--input",
                str(rows_file),
                "--returning",
                "inserted,updated,unchanged",
            ]
        )

        out = json.loads(capsys.readouterr().out)
        assert rc == 0
        assert out == {"table": "users", "outcomes": {"inserted": 1, "unchanged": 1}}
        assert fake_engine.commits >= 1
        assert "unchanged_rows AS (" in fake_engine.connection.statements[0]

    def test_plan_only_prints_statement(self, rows_file, fake_engine, capsys):
        rc = cli_module.main(
            ["upsert", "--table", "users", "--unique-by", "email", "--input", str(rows_file), "--plan-only"]
        )

        out = capsys.readouterr().out
        assert rc == 0
        assert out.startswith("WITH input_values")
        assert fake_engine.connection.statements == []

    def test_bad_returning_exits_2(self, rows_file, fake_engine, capsys):
        rc = cli_module.main(
            [
                "upsert",
                "--table",
                "users",
                "--unique-by",
                "email",
                "--input",
                str(rows_file),
                "--returning",
                "merged",
            ]
        )
        assert rc == 2
        assert "Unknown outcome" in capsys.readouterr().err

    def test_unknown_key_column_exits_2(self, rows_file, fake_engine, capsys):
        rc = cli_module.main(
            ["upsert", "--table", "users", "--unique-by", "login", "--input", str(rows_file)]
        )
        assert rc == 2
        assert "unique_by" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "extra", [["--batch-size", "0"], ["--unique-by", ","]], ids=["zero-batch", "empty-key"]
    )
    def test_invalid_arguments_exit_2(self, rows_file, fake_engine, capsys, extra):
        rc = cli_module.main(
            ["upsert", "--table", "users", "--unique-by", "email", "--input", str(rows_file)]
            + extra
        )
        assert rc == 2
        assert capsys.readouterr().err.startswith("error: ")
        assert fake_engine.connection.statements == []

    def test_missing_table_exits_1(self, rows_file, monkeypatch, capsys):
        monkeypatch.setattr(cli_module, "get_engine", lambda: FakeEngine())
        monkeypatch.setattr(cli_module, "reflect_table", lambda conn, table, schema="public": None)

        rc = cli_module.main(
            ["upsert", "--table", "ghosts", "--unique-by", "id", "--input", str(rows_file)]
        )

        assert rc == 1
        assert "public.ghosts not found" in capsys.readouterr().err

    def test_empty_input_skips_database(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "empty.json"
        path.write_text("[]", encoding="utf-8")

        def fail():
            raise AssertionError("database must not be touched")

        monkeypatch.setattr(cli_module, "get_engine", fail)

        rc = cli_module.main(
            ["upsert", "--table", "users", "--unique-by", "email", "--input", str(path)]
        )

        assert rc == 0
        assert json.loads(capsys.readouterr().out)["outcomes"] == {}


@pytest.mark.unit
def test_no_command_prints_help(capsys):
    assert cli_module.main([]) == 1
    assert "upsert" in capsys.readouterr().out


@pytest.mark.unit
def test_log_level_reconfigures_logging(monkeypatch):
    levels = []
    monkeypatch.setattr(cli_module, "configure_logging", lambda level=None: levels.append(level))

    assert cli_module.main(["--log-level", "DEBUG"]) == 1
    assert levels == ["DEBUG"]


@pytest.mark.unit
def test_log_level_omitted_keeps_configuration(monkeypatch):
    levels = []
    monkeypatch.setattr(cli_module, "configure_logging", lambda level=None: levels.append(level))

    cli_module.main([])
    assert levels == []
