"""Clock sources for the timer.

The timer reads two independent clocks:
- a wall clock (timezone-aware UTC datetimes) that survives restarts and is
  the authority for elapsed time
- a monotonic clock that is immune to wall-clock adjustments and is used to
  detect drift between the two
"""

import datetime as dt
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockSource(Protocol):
    """Abstraction over wall-clock time and a monotonic tick source."""

    def now(self) -> dt.datetime:
        """Current wall-clock time as an aware UTC datetime."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds from an arbitrary origin."""
        ...

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds``."""
        ...

    def today(self) -> dt.date:
        """Current local calendar day."""
        ...


class SystemClock:
    """ClockSource backed by the operating system clocks."""

    def now(self) -> dt.datetime:
        return dt.datetime.now(dt.timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def today(self) -> dt.date:
        return dt.date.today()
