"""
Affine time transform for the timewarp virtual clock.

A transform maps reference time onto clock time as f(x) = slope*x + offset,
where x is measured from the Unix epoch. Durations only see the slope.

The slope is a float, so every application rounds to the nearest
microsecond and repeated composition accumulates floating-point error.
That is accepted: the clock is a tool for tests and playback, not a
metrology instrument.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _epoch_for(x: datetime) -> datetime:
    # Naive instants are measured from a naive epoch.
    if x.tzinfo is None:
        return EPOCH.replace(tzinfo=None)
    return EPOCH


@dataclass(frozen=True)
class AffineTransform:
    """
    f(x) = slope*x + offset.

    Zero and negative slopes are legal. A zero slope models a stopped
    clock.
    """

    slope: float
    offset: timedelta

    @classmethod
    def identity(cls) -> AffineTransform:
        """
        The transform a new clock starts with: follow the reference.
        """
        return cls(slope=1.0, offset=timedelta(0))

    @classmethod
    def compose(
        cls, previous: AffineTransform, shift: timedelta, new_slope: float
    ) -> AffineTransform:
        """
        Derive a transform from 'previous'.

        The shift accumulates with all earlier shifts. The slope does not:
        'new_slope' replaces the previous one, so composing with 2 twice
        leaves the slope at 2, not 4.
        """
        return cls(slope=float(new_slope), offset=previous.offset + shift)

    def apply_point(self, x: datetime) -> datetime:
        """
        Map 'x' onto clock time. Results beyond the datetime range are
        clamped to datetime.min or datetime.max, so a fast clock pins at
        the end of time instead of raising.
        """
        epoch = _epoch_for(x)
        try:
            return epoch + (x - epoch) * self.slope + self.offset
        except OverflowError:
            seconds = (
                self.slope * (x - epoch).total_seconds()
                + self.offset.total_seconds()
            )
            bound = datetime.max if seconds > 0 else datetime.min
            return bound.replace(tzinfo=x.tzinfo)

    def apply_duration(self, d: timedelta) -> timedelta:
        try:
            return d * self.slope
        except OverflowError:
            if self.slope * d.total_seconds() > 0:
                return timedelta.max
            return timedelta.min
