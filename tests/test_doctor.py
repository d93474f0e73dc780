"""Tests for doctor health checks."""

import pytest

from qo.agent import doctor as doctor_mod
from qo.agent.config import Config
from qo.agent.doctor import DoctorCheck, _check_user_registry, has_errors, run_checks, to_table


def _checks_by_name(checks):
    return {c.name: c for c in checks}


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setattr(doctor_mod, "CONFIG_DIR", home)
    monkeypatch.setattr(doctor_mod, "CONFIG_FILE", home / "config.json")
    return home


def _cfg(tmp_path, **data):
    data.setdefault("auth.store_path", str(tmp_path / "users.json"))
    return Config(data=data)


def test_ready_config_has_no_errors(tmp_path):
    checks = run_checks(_cfg(tmp_path, **{"llm.api_key": "sk-test"}))
    by_name = _checks_by_name(checks)
    assert not has_errors(checks)
    assert by_name["llm"].status == "ok"
    assert "provider=deepseek" in by_name["llm"].detail


def test_missing_key_is_error(tmp_path):
    checks = run_checks(_cfg(tmp_path))
    llm = _checks_by_name(checks)["llm"]
    assert llm.status == "error"
    assert "DEEPSEEK_API_KEY" in llm.detail
    assert has_errors(checks)


def test_missing_config_file_warns(tmp_path):
    check = _checks_by_name(run_checks(_cfg(tmp_path)))["config_file"]
    assert check.status == "warn"


def test_existing_config_file_ok(tmp_path, isolated_home):
    isolated_home.mkdir()
    (isolated_home / "config.json").write_text("{}")
    check = _checks_by_name(run_checks(_cfg(tmp_path)))["config_file"]
    assert check.status == "ok"


def test_schema_issues_reported(tmp_path):
    checks = _checks_by_name(run_checks(_cfg(tmp_path, **{"ui.thme": "amber"})))
    assert checks["config_schema"].status == "warn"
    assert "ui.thme" in checks["config_schema"].detail


def test_history_dir_created(tmp_path, isolated_home):
    check = _checks_by_name(run_checks(_cfg(tmp_path)))["history_dir"]
    assert check.status == "ok"
    assert isolated_home.is_dir()


def test_commands_listed(tmp_path):
    check = _checks_by_name(run_checks(_cfg(tmp_path)))["commands"]
    assert check.detail.startswith("11 commands: help, ask")


class TestUserRegistryCheck:
    def test_missing_file_ok(self, tmp_path):
        check = _check_user_registry(tmp_path / "users.json")
        assert check.status == "ok"
        assert "No users yet" in check.detail

    def test_counts_users(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text('{"alice": {"password": "x"}, "bob": {"password": "y"}}')
        check = _check_user_registry(path)
        assert check.status == "ok"
        assert check.detail.startswith("2 user(s)")

    def test_corrupt_file_warns(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text("{ nope")
        assert _check_user_registry(path).status == "warn"

    def test_non_object_warns(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text("[]")
        assert _check_user_registry(path).status == "warn"


def test_to_table_has_row_per_check():
    checks = [
        DoctorCheck(name="a", status="ok", detail="fine"),
        DoctorCheck(name="b", status="error", detail="broken"),
    ]
    table = to_table(checks)
    assert table.title == "quant-optik Doctor"
    assert table.row_count == 2


def test_has_errors_ignores_warnings():
    assert not has_errors([DoctorCheck(name="a", status="warn", detail="")])
