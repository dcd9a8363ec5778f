"""Per-poll collectors, one per utility.

Every collector only needs a command runner, so tests hand them captured output
instead of running the real utilities.
"""

from typing import Dict

from sndchk.core import config, models
from sndchk.io.readers import parsers, readers

logger = config.get_logger()


class XrunCollector:
    """Per channel buffer xrun counters from sndctl(8)."""

    def __init__(self, run: readers.CommandRunner = readers.run_command) -> None:
        """Initialize the collector with the runner used to invoke sndctl."""
        self.run = run

    def collect(self, unit: int, playback_only: bool = False) -> Dict[str, int]:
        """Collects the xrun counters of every channel of a device.

        Args:
            unit: The pcm unit number.
            playback_only: Only sample playback channels.

        Returns:
            Channel name to cumulative xrun count. Empty when the device is busy or
            momentarily unavailable.
        """
        output = self.run(["sndctl", "-f", f"/dev/dsp{unit}", "-v", "-o"])
        samples = parsers.parse_xruns(output, playback_only=playback_only)
        if not samples:
            logger.debug("pcm%d: no xrun counters in sndctl output.", unit)
        return {sample.name: sample.xruns for sample in samples}


class UsbErrorCollector:
    """USB transfer failure counters from usbconfig(8)."""

    def __init__(self, run: readers.CommandRunner = readers.run_command) -> None:
        """Initialize the collector with the runner used to invoke usbconfig."""
        self.run = run

    def collect(self, ugen: str) -> models.UsbErrorSample:
        """Collects the transfer failure counters of a USB device.

        Args:
            ugen: The USB device identifier, e.g. '0.4'.

        Returns:
            The four failure counters.

        Raises:
            DeviceUnavailableError: If usbconfig had nothing to say about the device,
                typically because it was disconnected.
        """
        output = self.run(["usbconfig", "-d", ugen, "dump_stats"])
        return parsers.parse_usb_stats(output)


class IrqCollector:
    """Cumulative interrupt counts from vmstat(8)."""

    def __init__(self, run: readers.CommandRunner = readers.run_command) -> None:
        """Initialize the collector with the runner used to invoke vmstat."""
        self.run = run

    def collect(self, irq: str) -> int:
        """Returns the all-time count of an interrupt line, 0 when there is no data."""
        return parsers.parse_interrupt_count(self.run(["vmstat", "-i"]), irq)
