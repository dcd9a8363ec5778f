"""Access to the raw data sources: the sysctl tree, utilities and sndstat."""

import pathlib
import subprocess
from typing import Callable, Protocol, Sequence, Union

from sndchk.core import config, exceptions

logger = config.get_logger()

MAX_OUTPUT_BYTES = 64 * 1024
COMMAND_TIMEOUT = 10.0
SNDSTAT_PATH = pathlib.Path("/dev/sndstat")

CommandRunner = Callable[[Sequence[str]], str]


def run_command(
    argv: Sequence[str],
    max_bytes: int = MAX_OUTPUT_BYTES,
    timeout: float = COMMAND_TIMEOUT,
) -> str:
    """Runs an external utility and returns its standard output.

    Output beyond max_bytes is dropped at the last complete line. A utility that
    cannot be started, or that does not finish within the timeout, yields an empty
    string: to the callers this looks the same as a utility with nothing to say.

    Args:
        argv: The command and its arguments.
        max_bytes: Upper bound on the amount of output kept.
        timeout: Seconds to wait for the utility to finish.

    Returns:
        The captured standard output, decoded as text.
    """
    logger.debug("Running: %s", " ".join(argv))
    try:
        result = subprocess.run(
            list(argv),
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.warning("%s did not finish within %.1fs.", argv[0], timeout)
        return ""
    except OSError as e:
        logger.warning("Could not run %s: %s", argv[0], e)
        return ""

    output = result.stdout
    if len(output) > max_bytes:
        output = output[:max_bytes]
        output = output[: output.rfind(b"\n") + 1]
    return output.decode(errors="replace")


class PropertyStore(Protocol):
    """A hierarchical key/value store queried by dotted name."""

    def get_string(self, name: str) -> str:
        """Returns the string value of a property."""
        ...

    def get_int(self, name: str) -> int:
        """Returns the integer value of a property."""
        ...


class SysctlPropertyStore:
    """The kernel sysctl tree, read through sysctl(8)."""

    def __init__(self, timeout: float = COMMAND_TIMEOUT) -> None:
        """Initialize the store.

        Args:
            timeout: Seconds to wait for each sysctl invocation.
        """
        self.timeout = timeout

    def get_string(self, name: str) -> str:
        """Returns the value of a sysctl node.

        Args:
            name: Dotted node name, e.g. 'dev.pcm.0.%parent'.

        Returns:
            The value without its trailing newline.

        Raises:
            ResolutionGapError: If the node does not exist or has no value.
        """
        try:
            result = subprocess.run(
                ["sysctl", "-n", name],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise exceptions.ResolutionGapError(f"Could not read {name}: {e}") from e

        value = result.stdout.strip()
        if result.returncode != 0 or not value:
            raise exceptions.ResolutionGapError(f"No such sysctl: {name}")
        return value

    def get_int(self, name: str) -> int:
        """Returns the value of an integer sysctl node.

        Raises:
            ResolutionGapError: If the node does not exist.
            ParseError: If the value is not an integer.
        """
        value = self.get_string(name)
        try:
            return int(value)
        except ValueError as e:
            raise exceptions.ParseError(f"{name} is not an integer: {value}") from e


def read_sndstat(path: Union[pathlib.Path, str] = SNDSTAT_PATH) -> str:
    """Returns the device enumeration text, empty if it cannot be read."""
    try:
        return pathlib.Path(path).read_text(errors="replace")
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return ""
