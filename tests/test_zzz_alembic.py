"""Alembic migration tests.

File named test_zzz_alembic.py to sort LAST in pytest collection order.
"""

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def _alembic(tmp_path: Path, *args: str) -> subprocess.CompletedProcess:
    env = {**os.environ, "QUIZHUB_DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'migrations.db'}"}
    return subprocess.run(
        [sys.executable, "-m", "alembic", *args],
        cwd=ROOT,
        env=env,
        capture_output=True,
        text=True,
    )


def test_alembic_upgrade_head(tmp_path: Path) -> None:
    """alembic upgrade head succeeds without errors."""
    result = _alembic(tmp_path, "upgrade", "head")
    assert result.returncode == 0, f"alembic upgrade failed: {result.stderr}"


def test_alembic_current_shows_head(tmp_path: Path) -> None:
    """alembic current shows the latest revision."""
    assert _alembic(tmp_path, "upgrade", "head").returncode == 0
    result = _alembic(tmp_path, "current")
    assert result.returncode == 0
    assert "001_initial_schema" in result.stdout


def test_alembic_downgrade_base(tmp_path: Path) -> None:
    assert _alembic(tmp_path, "upgrade", "head").returncode == 0
    result = _alembic(tmp_path, "downgrade", "base")
    assert result.returncode == 0, f"alembic downgrade failed: {result.stderr}"
