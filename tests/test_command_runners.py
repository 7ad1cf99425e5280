"""Tests for command execution helpers."""
import subprocess
from unittest.mock import Mock, patch

import pytest

from pibackup.backup.command_runners import capture_command, run_command, run_pipeline
from pibackup.backup.commands import CommandSpec, PipelineSpec
from pibackup.storage.exceptions import CommandFailedError


def _process(returncode=0, running=False):
    process = Mock()
    process.returncode = returncode
    process.poll.return_value = None if running else returncode
    return process


class TestRunCommand:
    """Tests for run_command function."""

    def test_successful_command(self, mock_subprocess_success):
        """Test output is inherited when nothing is silenced."""
        run_command(CommandSpec(("sudo", "chown", "pi:pi", "/tmp/pi1.img")))

        mock_subprocess_success.assert_called_once_with(
            ["sudo", "chown", "pi:pi", "/tmp/pi1.img"],
            stdout=None,
            stderr=None,
        )

    def test_silenced_streams_go_to_devnull(self, mock_subprocess_success):
        """Test quiet commands discard their output."""
        run_command(CommandSpec(("pishrink.sh",), silence_stdout=True, silence_stderr=True))

        mock_subprocess_success.assert_called_once_with(
            ["pishrink.sh"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def test_command_failure(self, mock_subprocess_failure):
        """Test non-zero exit raises CommandFailedError."""
        with pytest.raises(CommandFailedError, match="exit status 1") as excinfo:
            run_command(CommandSpec(("false",)))

        assert excinfo.value.returncode == 1
        assert excinfo.value.command == ["false"]


class TestCaptureCommand:
    """Tests for capture_command function."""

    def test_returns_stdout(self, mock_subprocess_success):
        mock_subprocess_success.return_value.stdout = "Disk /dev/mmcblk0: 29.72 GiB"

        assert capture_command(CommandSpec(("sudo", "fdisk", "-l"))) == (
            "Disk /dev/mmcblk0: 29.72 GiB"
        )
        mock_subprocess_success.assert_called_once_with(
            ["sudo", "fdisk", "-l"], text=True, capture_output=True
        )

    def test_failure_with_stderr(self, mock_subprocess_failure):
        with pytest.raises(CommandFailedError, match="Command failed.*Mock error"):
            capture_command(CommandSpec(("sudo", "fdisk", "-l")))

    def test_failure_with_stdout(self, mock_subprocess_failure):
        mock_subprocess_failure.return_value.stderr = ""
        mock_subprocess_failure.return_value.stdout = "stdout error"

        with pytest.raises(CommandFailedError, match="stdout error"):
            capture_command(CommandSpec(("ssh", "pi1", "true")))


class TestRunPipeline:
    """Tests for run_pipeline function."""

    PIPELINE = PipelineSpec(
        reader=CommandSpec(("sudo", "dd", "if=/dev/mmcblk0"), silence_stderr=True),
        writer=CommandSpec(("dd", "of=/tmp/pi1.img")),
    )

    @patch("pibackup.backup.command_runners.subprocess.Popen")
    def test_connects_reader_to_writer(self, mock_popen):
        """Test the writer reads the reader's stdout."""
        reader, writer = _process(), _process()
        mock_popen.side_effect = [reader, writer]

        run_pipeline(self.PIPELINE)

        first, second = mock_popen.call_args_list
        assert first.args[0] == ["sudo", "dd", "if=/dev/mmcblk0"]
        assert first.kwargs["stdout"] == subprocess.PIPE
        assert first.kwargs["stderr"] == subprocess.DEVNULL
        assert second.args[0] == ["dd", "of=/tmp/pi1.img"]
        assert second.kwargs["stdin"] is reader.stdout
        assert second.kwargs["stderr"] is None
        reader.stdout.close.assert_called_once()
        reader.wait.assert_called_once()
        writer.wait.assert_called_once()

    @patch("pibackup.backup.command_runners.subprocess.Popen")
    def test_reader_failure(self, mock_popen):
        """Test a failing reader fails the pipeline even if the writer succeeds."""
        mock_popen.side_effect = [_process(returncode=1), _process()]

        with pytest.raises(CommandFailedError) as excinfo:
            run_pipeline(self.PIPELINE)

        assert excinfo.value.command == ["sudo", "dd", "if=/dev/mmcblk0"]

    @patch("pibackup.backup.command_runners.subprocess.Popen")
    def test_writer_failure(self, mock_popen):
        mock_popen.side_effect = [_process(), _process(returncode=1)]

        with pytest.raises(CommandFailedError) as excinfo:
            run_pipeline(self.PIPELINE)

        assert excinfo.value.command == ["dd", "of=/tmp/pi1.img"]

    @patch("pibackup.backup.command_runners.subprocess.Popen")
    def test_reader_terminated_when_writer_cannot_start(self, mock_popen):
        """Test a leftover reader is cleaned up if the writer fails to launch."""
        reader = _process(running=True)
        mock_popen.side_effect = [reader, FileNotFoundError("dd")]

        with pytest.raises(FileNotFoundError):
            run_pipeline(self.PIPELINE)

        reader.terminate.assert_called_once()
