from __future__ import annotations

from pathlib import Path

import pytest
from hypothesis import HealthCheck, settings

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# the autouse chdir fixture below is function scoped; it is harmless to
# share it across generated examples
settings.register_profile(
    "cmm",
    max_examples=100,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
settings.load_profile("cmm")


@pytest.fixture(autouse=True)
def _run_from_project_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests run with the project root as working directory."""
    monkeypatch.chdir(PROJECT_ROOT)
