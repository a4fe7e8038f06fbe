"""
Unit Tests for ProcessRunner
Every outcome of a shell command resolves to text
"""
import asyncio
import time
from unittest.mock import patch

import pytest

from app.services.process_runner import NO_OUTPUT, ProcessRunner


@pytest.fixture
def runner():
    return ProcessRunner(max_concurrency=4)


class TestOutput:
    """Tests for successful runs"""

    @pytest.mark.asyncio
    async def test_captures_stdout(self, runner, python):
        """Test stdout is returned"""
        output = await runner.run(f'{python} -c "print(\'hello\')"', 5000)

        assert output.strip() == "hello"

    @pytest.mark.asyncio
    async def test_captures_stderr(self, runner, python):
        """Test stderr of a successful run is returned too"""
        output = await runner.run(f'{python} -c "import sys; sys.stderr.write(\'warned\')"', 5000)

        assert "warned" in output

    @pytest.mark.asyncio
    async def test_no_output_sentinel(self, runner, python):
        """Test a silent success yields the sentinel, never an empty string"""
        output = await runner.run(f'{python} -c "pass"', 5000)

        assert output == NO_OUTPUT == "No output"


class TestFailures:
    """Tests for failures turned into text"""

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, runner, python):
        """Test a failing command reports the failure with its stderr"""
        output = await runner.run(f'{python} -c "import sys; sys.exit(\'broken\')"', 5000)

        assert output.startswith("Command failed:")
        assert "broken" in output

    @pytest.mark.asyncio
    async def test_unknown_command(self, runner):
        """Test a missing executable is reported, not raised"""
        output = await runner.run("definitely-not-a-real-command-xyz", 5000)

        assert output.startswith("Command failed:")

    @pytest.mark.asyncio
    async def test_spawn_error(self, runner):
        """Test an OSError while spawning becomes a message"""
        with patch("asyncio.create_subprocess_shell", side_effect=OSError("no shell")):
            output = await runner.run("echo hi", 5000)

        assert "Failed to start command" in output
        assert "no shell" in output

    @pytest.mark.asyncio
    async def test_timeout_returns_promptly(self, runner, python):
        """Test a run over its deadline returns a message soon after the deadline"""
        started = time.monotonic()

        output = await runner.run(f'{python} -c "import time; time.sleep(30)"', 300)

        elapsed = time.monotonic() - started
        assert "timed out after 300ms" in output
        assert elapsed < 5


class TestConcurrency:
    """Tests for the concurrency cap and run handles"""

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        """Test no more than max_concurrency commands run at once"""
        runner = ProcessRunner(max_concurrency=2)
        running = 0
        peak = 0

        async def fake_execute(command, timeout_ms):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.05)
            running -= 1
            return "done"

        with patch.object(runner, "_execute", side_effect=fake_execute):
            outputs = await asyncio.gather(*(runner.run(f"cmd {i}", 1000) for i in range(6)))

        assert outputs == ["done"] * 6
        assert peak == 2

    @pytest.mark.asyncio
    async def test_handle_reports_completion(self, runner, python):
        """Test a started run can be polled and awaited"""
        handle = runner.start(f'{python} -c "print(42)"', 5000)

        assert handle.command.endswith('"print(42)"')
        assert not handle.done()

        output = await handle.result()

        assert output.strip() == "42"
        assert handle.done()
        assert runner.active_count == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_abort_run(self, runner, python):
        """Test cancelling whoever awaits the handle leaves the run going"""
        handle = runner.start(f'{python} -c "import time; time.sleep(0.2); print(7)"', 5000)

        waiter = asyncio.create_task(handle.result())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert (await handle.result()).strip() == "7"
