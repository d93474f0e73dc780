"""
Readiness checks for quant-optik.

Used by `quant-optik doctor` to surface actionable setup issues.
"""

from dataclasses import dataclass
import json
import logging
from pathlib import Path

from rich.table import Table

from qo.agent.config import CONFIG_DIR, CONFIG_FILE, Config

logger = logging.getLogger("qo.doctor")


@dataclass
class DoctorCheck:
    name: str
    status: str  # "ok" | "warn" | "error"
    detail: str


def _status_markup(status: str) -> str:
    if status == "ok":
        return "[green]ok[/green]"
    if status == "warn":
        return "[yellow]warn[/yellow]"
    return "[red]error[/red]"


def run_checks(config: Config | None = None) -> list[DoctorCheck]:
    """Run readiness checks and return structured results."""
    cfg = config or Config.load()
    checks: list[DoctorCheck] = []

    # 1) Config file
    if CONFIG_FILE.exists():
        checks.append(DoctorCheck(name="config_file", status="ok", detail=f"Using {CONFIG_FILE}"))
    else:
        checks.append(
            DoctorCheck(
                name="config_file",
                status="warn",
                detail=f"No config file yet at {CONFIG_FILE} (defaults/env vars are used)",
            )
        )

    issues = cfg.validate()
    if issues:
        checks.append(DoctorCheck(name="config_schema", status="warn", detail="; ".join(issues)))

    # 2) LLM readiness. The terminal still runs without a key, AI commands just answer with errors.
    llm_issue = cfg.llm_preflight_issue()
    if llm_issue:
        checks.append(DoctorCheck(name="llm", status="error", detail=llm_issue))
    else:
        checks.append(
            DoctorCheck(
                name="llm",
                status="ok",
                detail=f"provider={cfg.get('llm.provider')}, model={cfg.get('llm.model')}",
            )
        )

    # 3) User registry
    checks.append(_check_user_registry(Path(cfg.get("auth.store_path"))))

    # 4) History directory
    try:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        checks.append(DoctorCheck(name="history_dir", status="ok", detail=f"Writable: {CONFIG_DIR}"))
    except OSError as exc:
        checks.append(DoctorCheck(name="history_dir", status="warn", detail=f"{CONFIG_DIR}: {exc}"))

    # 5) Command table
    from qo.commands.builtin import build_registry
    registry = build_registry()
    checks.append(
        DoctorCheck(name="commands", status="ok", detail=f"{len(registry)} commands: {', '.join(registry.names())}")
    )

    return checks


def _check_user_registry(path: Path) -> DoctorCheck:
    if not path.exists():
        return DoctorCheck(
            name="user_registry",
            status="ok",
            detail=f"No users yet; will be created at {path}",
        )
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        return DoctorCheck(name="user_registry", status="warn", detail=f"{path}: {exc} (starts empty)")
    if not isinstance(data, dict):
        return DoctorCheck(name="user_registry", status="warn", detail=f"{path}: not a JSON object (starts empty)")
    return DoctorCheck(name="user_registry", status="ok", detail=f"{len(data)} user(s) in {path}")


def has_errors(checks: list[DoctorCheck]) -> bool:
    """Return True if any check has error status."""
    return any(c.status == "error" for c in checks)


def to_table(checks: list[DoctorCheck]) -> Table:
    """Render doctor checks as a rich table."""
    table = Table(title="quant-optik Doctor")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    for check in checks:
        table.add_row(check.name, _status_markup(check.status), check.detail)

    return table
