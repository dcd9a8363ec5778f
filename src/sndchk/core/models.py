"""Internal data model."""

import abc
from enum import Enum
from typing import Dict, Literal, Optional

import pydantic
from pydantic import BaseModel, Field, field_validator, model_validator

CALIBRATION_SAMPLES = 10

USB_COUNTER_LABELS = {
    "control": "UE_CONTROL_FAIL",
    "isochronous": "UE_ISOCHRONOUS_FAIL",
    "bulk": "UE_BULK_FAIL",
    "interrupt": "UE_INTERRUPT_FAIL",
}

USB_COUNTER_SHORT_NAMES = {
    "control": "CTRL",
    "isochronous": "ISO",
    "bulk": "BULK",
    "interrupt": "INT",
}


class Resolution(str, Enum):
    """The three disjoint outcomes of device resolution."""

    non_usb = "non_usb"
    usb_resolved = "usb_resolved"
    usb_unresolved = "usb_unresolved"


class DeviceDescriptor(BaseModel):
    """A logical audio device and the physical path that serves it.

    Built once by the resolver at startup, it must not be mutated afterwards.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    unit: int = Field(ge=0)
    description: str = ""
    is_default: bool = False
    is_usb: bool = False
    ugen: Optional[str] = None
    controller: Optional[str] = None
    irq: Optional[str] = None

    @model_validator(mode="after")
    def validate_usb_fields(self) -> "DeviceDescriptor":
        """Validate that the USB path fields are consistent.

        Returns:
            The descriptor if it is valid.

        Raises:
            ValueError: If ugen is not present exactly when the device is USB backed,
                or if a controller or IRQ is given without the link above it.
        """
        if self.is_usb != (self.ugen is not None):
            raise ValueError("ugen must be present if and only if is_usb is set")
        if self.controller is not None and not self.is_usb:
            raise ValueError("controller requires a USB backed device")
        if self.irq is not None and self.controller is None:
            raise ValueError("irq requires a resolved controller")
        return self

    @property
    def name(self) -> str:
        """The logical device name, e.g. 'pcm6'."""
        return f"pcm{self.unit}"

    @property
    def resolution(self) -> Resolution:
        """Which of the resolution outcomes this descriptor represents."""
        if not self.is_usb:
            return Resolution.non_usb
        if self.controller is not None and self.irq is not None:
            return Resolution.usb_resolved
        return Resolution.usb_unresolved

    @property
    def irq_monitoring(self) -> bool:
        """IRQ monitoring is possible iff the interrupt line is known."""
        return self.irq is not None


class ChannelXrunSample(BaseModel):
    """Cumulative xrun count of one channel, e.g. 'pcm6.play.0'."""

    name: str
    xruns: int = Field(ge=0)

    @field_validator("name")
    def validate_name(cls, v: str) -> str:
        """Validate that the channel name is not empty.

        Args:
            cls: The class.
            v: The channel name to validate.

        Returns:
            v: The channel name if it is not empty.

        Raises:
            ValueError: If the channel name is empty.
        """
        if not v:
            raise ValueError("channel name must not be empty")
        return v


class UsbErrorSample(BaseModel):
    """The four cumulative USB transfer failure counters of one poll."""

    model_config = pydantic.ConfigDict(frozen=True)

    control: int = Field(0, ge=0)
    isochronous: int = Field(0, ge=0)
    bulk: int = Field(0, ge=0)
    interrupt: int = Field(0, ge=0)

    def as_labels(self) -> Dict[str, int]:
        """Returns the counters keyed by their usbconfig labels."""
        return {
            label: getattr(self, field) for field, label in USB_COUNTER_LABELS.items()
        }


class BaselineState(BaseModel):
    """Progress of the IRQ rate calibration."""

    model_config = pydantic.ConfigDict(frozen=True)

    samples: int = Field(0, ge=0, le=CALIBRATION_SAMPLES)
    mean: int = 0

    @property
    def established(self) -> bool:
        """Whether calibration has consumed all of its samples."""
        return self.samples == CALIBRATION_SAMPLES


class WatchConfig(BaseModel):
    """Monitoring options, read-only once constructed."""

    model_config = pydantic.ConfigDict(frozen=True, allow_inf_nan=False)

    device: Optional[int] = Field(None, ge=0)
    playback_only: bool = False
    show_xruns: bool = True
    show_usb: bool = True
    interval: float = Field(1.0, gt=0)
    threshold: float = 1.5


class Event(BaseModel):
    """Something the monitor reports on its event stream."""

    model_config = pydantic.ConfigDict(frozen=True)

    @abc.abstractmethod
    def describe(self) -> str:
        """Returns the event text without a timestamp."""


class CounterChange(Event):
    """A cumulative counter changed between two polls.

    A lower new value means the counter was reset (device reconnect, driver
    reload). The delta is then the new value itself, it is never negative.
    """

    metric: Literal["xruns", "usb"]
    name: str
    old: int
    new: int

    @property
    def reset(self) -> bool:
        """Whether the counter went backwards."""
        return self.new < self.old

    @property
    def delta(self) -> int:
        """Increase since the previous poll, or since the reset."""
        if self.reset:
            return self.new
        return self.new - self.old

    def describe(self) -> str:
        """Returns e.g. 'pcm6.play.0 xruns: 0 -> 2 (+2)'."""
        label = f"{self.name} xruns" if self.metric == "xruns" else self.name
        if self.reset:
            return f"{label}: {self.old} -> {self.new} (counter reset)"
        return f"{label}: {self.old} -> {self.new} (+{self.delta})"


class CounterSnapshot(Event):
    """Absolute counter values, printed once before the first diff."""

    label: str
    values: Dict[str, int]

    def describe(self) -> str:
        """Returns e.g. 'Initial xruns: pcm6.play.0=0 pcm6.record.0=1'."""
        pairs = "".join(f" {name}={value}" for name, value in self.values.items())
        return f"{self.label}:{pairs}"


class BaselineEstablished(Event):
    """Calibration of the IRQ rate finished."""

    controller: str
    mean: int
    unit: str = "/s"

    def describe(self) -> str:
        """Returns e.g. 'xhci0 baseline: 7592/s'."""
        return f"{self.controller} baseline: {self.mean}{self.unit}"


class IrqSpike(Event):
    """An IRQ rate sample exceeded the baseline times the threshold."""

    controller: str
    baseline: int = Field(gt=0)
    rate: int
    unit: str = "/s"

    @property
    def ratio(self) -> float:
        """The observed rate as a multiple of the baseline."""
        return self.rate / self.baseline

    def describe(self) -> str:
        """Returns e.g. 'xhci0: 7592 -> 15840/s (2.1x)'."""
        return (
            f"{self.controller}: {self.baseline} -> {self.rate}{self.unit} "
            f"({self.ratio:.1f}x)"
        )


class Notice(Event):
    """Status or warning text, e.g. a disconnected USB device."""

    message: str
    level: Literal["info", "warning"] = "info"

    def describe(self) -> str:
        """Returns the message."""
        return self.message
