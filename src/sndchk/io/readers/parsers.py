"""Line grammars for the output of the utilities sndchk reads.

Each parser takes the complete text one invocation produced and returns typed
values. None of them run anything, so they can be tested against captured output.
"""

import re
from typing import List, Optional, Tuple

from sndchk.core import exceptions, models

RAW_NODE_PREFIX = "dsp"
LOGICAL_PREFIX = "pcm"

# sndctl -v -o: "dsp6.play.0.xruns=2"
_XRUNS_LINE = re.compile(r"^\s*(?P<name>\S+?)\.xruns=(?P<count>\d+)\s*$")

# usbconfig dump_stats: "UE_ISOCHRONOUS_FAIL:             8"
_USB_COUNTER = re.compile(r"\b(?P<label>UE_[A-Z]+_FAIL)\s*:\s*(?P<count>\d+)")

# %location: "bus=0 hubaddr=1 port=3 devaddr=4 interface=1 ugen=ugen0.4"
_UGEN_TOKEN = re.compile(r"\bugen=ugen(?P<ugen>\d+\.\d+)\b")

# /dev/sndstat: "pcm6: <Focusrite Scarlett 2i2> (play/rec) default"
_SNDSTAT_LINE = re.compile(r"^pcm(?P<unit>\d+):\s?(?P<description>.*)$")


def parse_xruns(
    text: str, playback_only: bool = False
) -> List[models.ChannelXrunSample]:
    """Parses sndctl verbose overview output into per channel samples.

    The raw node prefix of each channel is rewritten to the logical name, so
    'dsp6.play.0' becomes 'pcm6.play.0'.

    Args:
        text: Output of `sndctl -f /dev/dspN -v -o`.
        playback_only: Drop every line that does not belong to a playback channel.

    Returns:
        One sample per matching line, in output order. Lines that do not follow
        the grammar are ignored.
    """
    samples = []
    for line in text.splitlines():
        if "xruns=" not in line:
            continue
        if playback_only and "play" not in line:
            continue
        match = _XRUNS_LINE.match(line)
        if match is None:
            continue
        name = match["name"]
        if name.startswith(RAW_NODE_PREFIX):
            name = LOGICAL_PREFIX + name[len(RAW_NODE_PREFIX) :]
        samples.append(models.ChannelXrunSample(name=name, xruns=int(match["count"])))
    return samples


def parse_usb_stats(text: str) -> models.UsbErrorSample:
    """Parses usbconfig dump_stats output.

    Each of the four failure counters is read independently; a missing label
    leaves that counter at zero.

    Args:
        text: Output of `usbconfig -d ugen dump_stats`.

    Returns:
        The transfer failure counters.

    Raises:
        DeviceUnavailableError: If the output is empty.
    """
    if not text.strip():
        raise exceptions.DeviceUnavailableError("usbconfig returned no statistics")

    label_to_field = {
        label: field for field, label in models.USB_COUNTER_LABELS.items()
    }
    counters = {}
    for match in _USB_COUNTER.finditer(text):
        field = label_to_field.get(match["label"])
        if field is not None:
            counters[field] = int(match["count"])
    return models.UsbErrorSample(**counters)


def parse_ugen_location(location: str) -> str:
    """Extracts the USB device identifier from a uaudio location string.

    Args:
        location: Value of dev.uaudio.N.%location.

    Returns:
        The identifier in bus.port form, e.g. '0.4'.

    Raises:
        ParseError: If the location holds no ugen token.
    """
    match = _UGEN_TOKEN.search(location)
    if match is None:
        raise exceptions.ParseError(f"No ugen token in location: {location!r}")
    return match["ugen"]


def _split_interrupt_line(line: str) -> Optional[Tuple[str, List[str]]]:
    """Splits a vmstat -i line into its identifier and whitespace fields."""
    if ":" not in line:
        return None
    identifier = line.split(":", 1)[0].strip()
    if not identifier:
        return None
    return identifier, line.split()


def find_interrupt(text: str, owner: str) -> Optional[str]:
    """Finds the interrupt line served by a controller.

    Args:
        text: Output of `vmstat -i`.
        owner: The controller name, e.g. 'xhci0'.

    Returns:
        The identifier of the first line naming the owner, e.g. 'irq64', or None.
    """
    pattern = re.compile(rf"(?<!\w){re.escape(owner)}(?!\w)")
    for line in text.splitlines():
        split = _split_interrupt_line(line)
        if split is None:
            continue
        identifier, fields = split
        if any(pattern.search(field) for field in fields[1:]):
            return identifier
    return None


def parse_interrupt_count(text: str, irq: str) -> int:
    """Reads the all-time interrupt count of one line of vmstat -i output.

    Format: 'irq64: xhci0    12345    100', the count is the third field.

    Args:
        text: Output of `vmstat -i`.
        irq: Identifier of the interrupt line, e.g. 'irq64'.

    Returns:
        The cumulative count, or 0 if no line matches or the field is malformed.
    """
    for line in text.splitlines():
        split = _split_interrupt_line(line)
        if split is None:
            continue
        identifier, fields = split
        if identifier != irq:
            continue
        if len(fields) < 3 or not fields[2].isdigit():
            return 0
        return int(fields[2])
    return 0


def parse_sndstat(text: str) -> List[Tuple[int, str]]:
    """Parses the device enumeration into (unit, description) pairs."""
    devices = []
    for line in text.splitlines():
        match = _SNDSTAT_LINE.match(line)
        if match is not None:
            devices.append((int(match["unit"]), match["description"].strip()))
    return devices
