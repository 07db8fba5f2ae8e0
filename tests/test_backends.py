"""Tests for host probing and the live and simulated execution backends."""

import asyncio
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from maintenance_orchestrator.execution.backends import (
    LiveBackend,
    SimulatedBackend,
    probe_host,
    powershell_command,
    select_backend,
)
from maintenance_orchestrator.execution.models import (
    ErrorKind,
    ExecutionMode,
    RunOutcome,
)
from maintenance_orchestrator.planning.plan_builder import build


SCENARIO = {"remove_onedrive": True, "disable_telemetry": True}


class Recorder:
    """Collects sink invocations."""

    def __init__(self):
        self.output = []
        self.progress = []

    def on_output(self, event):
        self.output.append(event)

    async def on_progress(self, event):
        self.progress.append(event.percent)

    @property
    def lines(self):
        return [event.text for event in self.output]


class TestProbeHost:
    """Capability probing and backend selection."""

    def test_forced_simulation(self, windows_platform, execution_settings):
        capability = probe_host(windows_platform, execution_settings, force_simulation=True)

        assert not capability.live_supported
        assert capability.reason == "Simulation requested"
        assert capability.mode is ExecutionMode.SIMULATED

    def test_forced_simulation_from_settings(self, windows_platform, execution_settings):
        execution_settings['force_simulation'] = True

        assert not probe_host(windows_platform, execution_settings).live_supported

    def test_non_windows_host_falls_back(self, fake_platform, execution_settings):
        capability = probe_host(fake_platform, execution_settings)

        assert not capability.live_supported
        assert capability.reason == "Non-Windows host (linux)"

    def test_missing_interpreter_falls_back(self, windows_platform, execution_settings):
        windows_platform.interpreter = None

        capability = probe_host(windows_platform, execution_settings)

        assert capability.reason == "No PowerShell interpreter found"

    def test_windows_with_interpreter_is_live(self, windows_platform, execution_settings):
        capability = probe_host(windows_platform, execution_settings)

        assert capability.live_supported
        assert capability.interpreter == sys.executable
        assert capability.mode is ExecutionMode.LIVE

    def test_select_backend(self, windows_platform, fake_platform, execution_settings):
        live = select_backend(probe_host(windows_platform, execution_settings), windows_platform)
        simulated = select_backend(probe_host(fake_platform, execution_settings), fake_platform,
                                   execution_settings)

        assert isinstance(live, LiveBackend)
        assert isinstance(simulated, SimulatedBackend)
        assert simulated.reason == "Non-Windows host (linux)"

    def test_powershell_command(self):
        command = powershell_command("pwsh")(Path("plan.ps1"))

        assert command == ["pwsh", "-NoProfile", "-NonInteractive",
                           "-ExecutionPolicy", "Bypass", "-File", "plan.ps1"]


class TestSimulatedBackend:
    """Simulated replay."""

    def make_backend(self, execution_settings, reason="Non-Windows host (linux)"):
        return SimulatedBackend(reason=reason, settings=execution_settings)

    @pytest.mark.asyncio
    async def test_replays_transcript_and_succeeds(self, execution_settings):
        backend = self.make_backend(execution_settings)
        plan = build(SCENARIO)
        recorder = Recorder()

        with patch("tempfile.mkstemp") as mkstemp:
            result = await backend.execute(plan, recorder.on_output, recorder.on_progress)

        mkstemp.assert_not_called()
        assert result.outcome is RunOutcome.SUCCESS
        assert result.mode is ExecutionMode.SIMULATED
        assert recorder.lines == backend.transcript(plan)
        assert recorder.lines[:2] == [
            "Environment detected: Non-Windows host (linux). Running in Simulation Mode.",
            "-" * 60,
        ]
        assert "> Remove OneDrive..." in recorder.lines
        assert "> Disable Telemetry: done" in recorder.lines
        assert recorder.progress == [25.0, 50.0, 75.0, 100.0]

    @pytest.mark.asyncio
    async def test_trace_never_contains_commands(self, execution_settings):
        backend = self.make_backend(execution_settings)
        recorder = Recorder()

        await backend.execute(build(SCENARIO), recorder.on_output)

        joined = "\n".join(recorder.lines)
        assert "taskkill" not in joined
        assert "Set-ItemProperty" not in joined
        assert not any(event.is_error for event in recorder.output)

    @pytest.mark.asyncio
    async def test_empty_plan_succeeds(self, execution_settings):
        backend = self.make_backend(execution_settings, reason=None)
        recorder = Recorder()

        result = await backend.execute(build({}), recorder.on_output, recorder.on_progress)

        assert result.succeeded
        assert recorder.lines[0] == "Running in Simulation Mode."
        assert recorder.progress[-1] == 100.0

    @pytest.mark.asyncio
    async def test_cancel_stops_before_next_line(self, execution_settings):
        backend = self.make_backend(execution_settings)
        cancel_event = asyncio.Event()
        cancel_event.set()
        recorder = Recorder()

        result = await backend.execute(build(SCENARIO), recorder.on_output, cancel_event=cancel_event)

        assert result.outcome is RunOutcome.CANCELLED
        # header plus the first banner line
        assert len(recorder.lines) == 3

    @pytest.mark.asyncio
    async def test_uses_line_and_pause_delays(self, execution_settings):
        backend = SimulatedBackend(line_delay=0.01, pause_delay=0.02, settings=execution_settings)

        with patch("maintenance_orchestrator.execution.backends.sleep_or_cancelled",
                   return_value=False) as sleeper:
            await backend.execute(build({"remove_onedrive": True}))

        delays = [call.args[0] for call in sleeper.await_args_list]
        # banner line + pause, two step lines, banner line + pause
        assert delays == [0.01, 0.02, 0.01, 0.01, 0.01, 0.02]


class TestLiveBackend:
    """Live execution through a real child process."""

    def make_backend(self, script_runner, fake_platform, used_paths, exit_code=0):
        def command_builder(script_path):
            used_paths.append(script_path)
            return [sys.executable, str(script_runner), str(script_path), str(exit_code)]
        return LiveBackend(command_builder, platform=fake_platform)

    @pytest.mark.asyncio
    async def test_streams_output_and_progress(self, script_runner, fake_platform):
        used_paths = []
        backend = self.make_backend(script_runner, fake_platform, used_paths)
        recorder = Recorder()

        result = await backend.execute(build(SCENARIO), recorder.on_output, recorder.on_progress)

        assert result.outcome is RunOutcome.SUCCESS
        assert result.exit_code == 0
        assert result.mode is ExecutionMode.LIVE

        stdout = [event.text for event in recorder.output if not event.is_error]
        stderr = [event.text for event in recorder.output if event.is_error]
        assert stdout == ["[1/2] Remove OneDrive", "[2/2] Disable Telemetry", ""]
        assert stderr == ["simulated warning"]
        assert recorder.progress == [0.0, 50.0, 100.0]

    @pytest.mark.asyncio
    async def test_script_is_removed_after_success(self, script_runner, fake_platform):
        used_paths = []
        backend = self.make_backend(script_runner, fake_platform, used_paths)

        await backend.execute(build(SCENARIO))

        assert len(used_paths) == 1
        assert used_paths[0].suffix == ".ps1"
        assert not used_paths[0].exists()

    @pytest.mark.asyncio
    async def test_non_zero_exit_fails(self, script_runner, fake_platform):
        used_paths = []
        backend = self.make_backend(script_runner, fake_platform, used_paths, exit_code=3)
        recorder = Recorder()

        result = await backend.execute(build(SCENARIO), recorder.on_output, recorder.on_progress)

        assert result.outcome is RunOutcome.FAILED
        assert result.exit_code == 3
        assert result.reason == "Interpreter exited with code 3"
        assert 100.0 not in recorder.progress
        assert not used_paths[0].exists()

    @pytest.mark.asyncio
    async def test_spawn_failure_is_reported(self, tmp_path, fake_platform):
        used_paths = []

        def command_builder(script_path):
            used_paths.append(script_path)
            return [str(tmp_path / "no-such-interpreter")]

        backend = LiveBackend(command_builder, platform=fake_platform)
        recorder = Recorder()

        result = await backend.execute(build(SCENARIO), recorder.on_output)

        assert result.outcome is RunOutcome.FAILED
        assert result.error_kind is ErrorKind.SPAWN_FAILED
        assert recorder.output[-1].is_error
        assert recorder.output[-1].text.startswith("FATAL ERROR: Failed to start")
        assert not used_paths[0].exists()

    @pytest.mark.asyncio
    async def test_cancel_terminates_child(self, fake_platform):
        used_paths = []
        cancel_event = asyncio.Event()

        def command_builder(script_path):
            used_paths.append(script_path)
            return [sys.executable, "-c",
                    "import time; print('started', flush=True); time.sleep(60)"]

        def on_output(event):
            if event.text == "started":
                cancel_event.set()

        backend = LiveBackend(command_builder, platform=fake_platform)

        result = await asyncio.wait_for(
            backend.execute(build(SCENARIO), on_output, cancel_event=cancel_event), timeout=30
        )

        assert result.outcome is RunOutcome.CANCELLED
        assert not used_paths[0].exists()

    @pytest.mark.asyncio
    async def test_task_cancellation_cleans_up(self, fake_platform):
        used_paths = []
        started = asyncio.Event()

        def command_builder(script_path):
            used_paths.append(script_path)
            return [sys.executable, "-c",
                    "import time; print('started', flush=True); time.sleep(60)"]

        def on_output(event):
            started.set()

        backend = LiveBackend(command_builder, platform=fake_platform)
        task = asyncio.ensure_future(backend.execute(build(SCENARIO), on_output))
        await asyncio.wait_for(started.wait(), timeout=30)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not used_paths[0].exists()

    @pytest.mark.asyncio
    async def test_blank_lines_are_forwarded(self, fake_platform):
        def command_builder(script_path):
            return [sys.executable, "-c", "print('first'); print(); print('   '); print('last')"]

        backend = LiveBackend(command_builder, platform=fake_platform)
        recorder = Recorder()

        result = await backend.execute(build(SCENARIO), recorder.on_output)

        assert result.outcome is RunOutcome.SUCCESS
        assert [event.text for event in recorder.output] == ["first", "", "   ", "last"]

    @pytest.mark.asyncio
    async def test_output_is_decoded_with_console_encoding(self, fake_platform):
        """Child output uses the host console code page, not UTF-8."""
        fake_platform.console_encoding = lambda: "cp850"

        def command_builder(script_path):
            return [sys.executable, "-c",
                    "import sys; sys.stdout.buffer.write('Pr\\u00fcfung\\n'.encode('cp850'))"]

        backend = LiveBackend(command_builder, platform=fake_platform)
        recorder = Recorder()

        await backend.execute(build(SCENARIO), recorder.on_output)

        assert backend.encoding == "cp850"
        assert [event.text for event in recorder.output] == ["Prüfung"]
