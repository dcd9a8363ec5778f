"""Fixtures used by pytest."""

from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

import pytest

from sndchk.core import exceptions

SNDSTAT = """\
Installed devices:
pcm0: <Realtek ALC892 (Analog 2.0+HP/2.0)> (play/rec)
pcm1: <Realtek ALC892 (Rear Digital)> (play)
pcm6: <Focusrite Scarlett 2i2 4th Gen> (play/rec) default
No devices installed from userspace.
"""

SNDCTL = """\
dsp6.bitperfect=0
dsp6.autoconv=1
dsp6.realtime=0
dsp6.play.format=s32le:2.0
dsp6.play.rate=48000
dsp6.play.0.xruns=0
dsp6.play.0.feedercount=2
dsp6.record.format=s32le:2.0
dsp6.record.rate=48000
dsp6.record.0.xruns=3
"""

USBCONFIG = """\
ugen0.4: <Focusrite Scarlett 2i2 4th Gen> at usbus0, cfg=0 md=HOST spd=HIGH (480Mbps) pwr=ON (0mA)
  UE_CONTROL_OK:                    120
  UE_ISOCHRONOUS_OK:              88000
  UE_BULK_OK:                         0
  UE_INTERRUPT_OK:                    0
  UE_CONTROL_FAIL:                    1
  UE_ISOCHRONOUS_FAIL:                8
  UE_BULK_FAIL:                       0
  UE_INTERRUPT_FAIL:                  0
"""

VMSTAT = """\
interrupt                          total       rate
cpu0:timer                      12345678       1000
cpu1:timer                      12340000        999
irq16: ehci0                       12345          1
irq64: xhci0                    75920000       7592
irq65: xhci01                        100          0
irq72: hdac0                        5678          0
Total                          200000000      20000
"""

USB_PROPERTIES: Dict[str, Union[str, int]] = {
    "hw.snd.default_unit": 6,
    "dev.pcm.0.%parent": "hdaa0",
    "dev.pcm.1.%parent": "hdaa0",
    "dev.pcm.6.%parent": "uaudio0",
    "dev.uaudio.0.%location": (
        "bus=0 hubaddr=1 port=4 devaddr=4 interface=1 ugen=ugen0.4"
    ),
    "dev.usbus.0.%parent": "xhci0",
}


class FakePropertyStore:
    """A sysctl tree backed by a dictionary."""

    def __init__(self, values: Mapping[str, Union[str, int]]) -> None:
        """Initialize the store with its nodes."""
        self.values = dict(values)

    def get_string(self, name: str) -> str:
        """Returns a node, or raises like the real store for missing ones."""
        if name not in self.values:
            raise exceptions.ResolutionGapError(f"No such sysctl: {name}")
        return str(self.values[name])

    def get_int(self, name: str) -> int:
        """Returns an integer node."""
        value = self.get_string(name)
        try:
            return int(value)
        except ValueError as e:
            raise exceptions.ParseError(f"{name} is not an integer") from e


class FakeRunner:
    """A command runner returning canned output keyed by utility name."""

    def __init__(self, outputs: Mapping[str, str]) -> None:
        """Initialize the runner with the output of each utility."""
        self.outputs = dict(outputs)
        self.calls: List[List[str]] = []

    def __call__(self, argv: Sequence[str]) -> str:
        """Records the call and returns the canned output."""
        self.calls.append(list(argv))
        return self.outputs.get(argv[0], "")


@pytest.fixture
def sndstat_text() -> str:
    """Captured /dev/sndstat."""
    return SNDSTAT


@pytest.fixture
def sndctl_output() -> str:
    """Captured `sndctl -f /dev/dsp6 -v -o`."""
    return SNDCTL


@pytest.fixture
def usbconfig_output() -> str:
    """Captured `usbconfig -d 0.4 dump_stats`."""
    return USBCONFIG


@pytest.fixture
def vmstat_output() -> str:
    """Captured `vmstat -i`."""
    return VMSTAT


@pytest.fixture
def make_properties() -> Callable[..., FakePropertyStore]:
    """Builds a property store from the USB device tree plus overrides.

    Overrides with a value of None remove the node.
    """

    def _make(
        overrides: Optional[Mapping[str, Union[str, int, None]]] = None,
    ) -> FakePropertyStore:
        values: Dict[str, Union[str, int]] = dict(USB_PROPERTIES)
        for name, value in (overrides or {}).items():
            if value is None:
                values.pop(name, None)
            else:
                values[name] = value
        return FakePropertyStore(values)

    return _make


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    """Builds a command runner with the captured output of every utility."""

    def _make(**overrides: str) -> FakeRunner:
        outputs = {"sndctl": SNDCTL, "usbconfig": USBCONFIG, "vmstat": VMSTAT}
        outputs.update(overrides)
        return FakeRunner(outputs)

    return _make
