"""Test configuration and fixtures for Maintenance Orchestrator tests."""

import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

# Keep the global config away from the real home directory
os.environ.setdefault("MAINTENANCE_ORCHESTRATOR_HOME", tempfile.mkdtemp(prefix="orchestrator-tests-"))

import pytest

from maintenance_orchestrator.core.platform_compat import PlatformInterface, SystemInfo
from maintenance_orchestrator.execution.estimator import ProgressEstimator


# Stands in for PowerShell: echoes step markers, one stderr line, then exits
SCRIPT_RUNNER = '''
import sys

exit_code = int(sys.argv[2]) if len(sys.argv) > 2 else 0
with open(sys.argv[1], encoding="utf-8-sig") as f:
    for line in f:
        line = line.rstrip("\\r\\n")
        if line.startswith("Write-Output '") and line.endswith("'"):
            print(line[len("Write-Output '"):-1].replace("''", "'"), flush=True)
print("", flush=True)
print("simulated warning", file=sys.stderr, flush=True)
sys.exit(exit_code)
'''


class FakePlatform(PlatformInterface):
    """Scriptable host for tests; process control stays real"""

    def __init__(self, name: str = "linux", elevated: bool = False,
                 relaunch_confirmed: bool = False, interpreter: Optional[str] = None,
                 temp_dir: Optional[Path] = None):
        super().__init__()
        self.name = name
        self.elevated = elevated
        self.relaunch_confirmed = relaunch_confirmed
        self.interpreter = interpreter
        self._temp_dir = temp_dir
        self.elevation_checks = 0
        self.relaunches: List[Optional[List[str]]] = []
        self.elevated_commands: List[List[str]] = []

    def get_system_info(self) -> SystemInfo:
        return SystemInfo(self.name, "test", "x86_64", "localhost", "tester", self.temp_dir())

    def is_elevated(self) -> bool:
        self.elevation_checks += 1
        return self.elevated

    def relaunch_elevated(self, argv: Optional[Sequence[str]] = None) -> bool:
        self.relaunches.append(list(argv) if argv is not None else None)
        return self.relaunch_confirmed

    def elevated_command(self, command: Sequence[str]) -> List[str]:
        self.elevated_commands.append(list(command))
        return list(command)

    def shell_command(self, command_line: str) -> List[str]:
        # Phase commands in tests are Python snippets
        return [sys.executable, "-c", command_line]

    def find_script_interpreter(self, preferred: Optional[str] = None) -> Optional[str]:
        return self.interpreter

    def temp_dir(self) -> Path:
        return self._temp_dir or Path(tempfile.gettempdir())


@pytest.fixture
def fake_platform(tmp_path: Path) -> FakePlatform:
    """Linux-like, unelevated host."""
    return FakePlatform(temp_dir=tmp_path)


@pytest.fixture
def windows_platform(tmp_path: Path) -> FakePlatform:
    """Windows-like host with an interpreter available."""
    return FakePlatform(name="windows", interpreter=sys.executable, temp_dir=tmp_path)


@pytest.fixture
def execution_settings() -> Dict[str, Any]:
    """Execution settings with every delay removed."""
    return {
        'force_simulation': False,
        'interpreter': None,
        'simulation_line_delay': 0,
        'simulation_pause_delay': 0,
    }


@pytest.fixture
def fast_estimator() -> ProgressEstimator:
    return ProgressEstimator(interval=0.01, increment=0.1, cap=0.9)


@pytest.fixture
def script_runner(tmp_path: Path) -> Path:
    """Python script that replays a generated script's step markers."""
    runner = tmp_path / "runner" / "run_script.py"
    runner.parent.mkdir()
    runner.write_text(SCRIPT_RUNNER)
    return runner
