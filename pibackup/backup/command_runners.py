"""Command execution for backup steps."""

import subprocess

from pibackup.logging import LoggerFactory
from pibackup.storage.exceptions import CommandFailedError

log = LoggerFactory.for_commands()


def _stream(silenced):
    return subprocess.DEVNULL if silenced else None


def run_command(spec):
    """Run a command, letting its output through unless silenced.

    Raises CommandFailedError if it exits non-zero.
    """
    log.debug(f"Running command: {spec.display()}")
    result = subprocess.run(
        list(spec.argv),
        stdout=_stream(spec.silence_stdout),
        stderr=_stream(spec.silence_stderr),
    )
    if result.returncode != 0:
        raise CommandFailedError(spec.argv, result.returncode)
    log.debug(f"Command completed with return code {result.returncode}")
    return result


def capture_command(spec):
    """Run a command and return its stdout; raise CommandFailedError if it fails."""
    log.debug(f"Running command: {spec.display()}")
    result = subprocess.run(
        list(spec.argv),
        text=True,
        capture_output=True,
    )
    if result.returncode != 0:
        stderr = result.stderr.strip()
        stdout = result.stdout.strip()
        raise CommandFailedError(spec.argv, result.returncode, stderr or stdout)
    return result.stdout


def run_pipeline(pipeline):
    """Run ``reader | writer`` and wait for both to finish.

    Either stage exiting non-zero fails the pipeline.
    """
    log.debug(f"Running pipeline: {pipeline.display()}")
    processes = []
    try:
        reader = subprocess.Popen(
            list(pipeline.reader.argv),
            stdout=subprocess.PIPE,
            stderr=_stream(pipeline.reader.silence_stderr),
        )
        processes.append(reader)

        writer = subprocess.Popen(
            list(pipeline.writer.argv),
            stdin=reader.stdout,
            stdout=_stream(pipeline.writer.silence_stdout),
            stderr=_stream(pipeline.writer.silence_stderr),
        )
        processes.append(writer)

        # Only the writer may hold the read end, so the reader sees SIGPIPE
        # if the writer dies early.
        reader.stdout.close()

        writer.wait()
        reader.wait()

        if reader.returncode != 0:
            raise CommandFailedError(pipeline.reader.argv, reader.returncode)
        if writer.returncode != 0:
            raise CommandFailedError(pipeline.writer.argv, writer.returncode)
        log.debug("Pipeline completed successfully")
    finally:
        for proc in processes:
            if proc.poll() is None:
                proc.terminate()
                try:
                    proc.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    proc.kill()


__all__ = [
    "run_command",
    "capture_command",
    "run_pipeline",
]
