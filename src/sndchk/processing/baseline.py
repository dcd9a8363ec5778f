"""IRQ rate baseline calibration and spike detection."""

from typing import Optional, Union

from sndchk.core import config, models

logger = config.get_logger()


def interrupt_rate(previous: int, current: int) -> int:
    """Interrupts counted during one poll.

    A cumulative count lower than the previous one means the counter was reset,
    the rate is then everything counted since the reset.

    Args:
        previous: Cumulative count of the previous poll.
        current: Cumulative count of this poll.

    Returns:
        The non-negative number of interrupts between the two polls.
    """
    if current < previous:
        return current
    return current - previous


class SpikeDetector:
    """Static baseline over the first samples, then a fixed multiplier threshold.

    The first CALIBRATION_SAMPLES rate samples build an incremental integer mean:

        mean = (mean * (k - 1) + rate) // k

    where k is the 1-based sample index. The mean is frozen once calibration ends,
    long term drift is not re-baselined.
    """

    def __init__(
        self,
        controller: str,
        threshold: float,
        unit: str = "/s",
    ) -> None:
        """Initialize the detector.

        Args:
            controller: Name of the controller the rates belong to, used in events.
            threshold: Multiplier of the baseline above which a rate is a spike.
            unit: Rate unit shown in events.
        """
        self.controller = controller
        self.threshold = threshold
        self.unit = unit
        self.state = models.BaselineState()

    def update(
        self, rate: int
    ) -> Optional[Union[models.BaselineEstablished, models.IrqSpike]]:
        """Feeds one rate sample.

        Args:
            rate: Interrupts counted during the last poll.

        Returns:
            BaselineEstablished on the last calibration sample, IrqSpike when an
            established baseline is exceeded, None otherwise.
        """
        if not self.state.established:
            return self._calibrate(rate)
        return self._check(rate)

    def _calibrate(self, rate: int) -> Optional[models.BaselineEstablished]:
        k = self.state.samples + 1
        mean = (self.state.mean * (k - 1) + rate) // k
        self.state = models.BaselineState(samples=k, mean=mean)
        logger.debug(
            "%s calibration sample %d: rate %d, mean %d", self.controller, k, rate, mean
        )
        if not self.state.established:
            return None
        return models.BaselineEstablished(
            controller=self.controller, mean=mean, unit=self.unit
        )

    def _check(self, rate: int) -> Optional[models.IrqSpike]:
        mean = self.state.mean
        if mean == 0:
            return None
        if rate <= int(mean * self.threshold):
            return None
        return models.IrqSpike(
            controller=self.controller, baseline=mean, rate=rate, unit=self.unit
        )
