import re
import time
from typing import Callable, Union


Clock = Callable[[], float]

_DURATION_RE = re.compile(r'(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?(?:(\d+(?:\.\d+)?)s?)?')


def duration_to_str(duration: float) -> str:
    days = int(duration // 86400)
    hours = int((duration % 86400) // 3600)
    minutes = int((duration % 3600) // 60)
    seconds = duration % 60
    out = ""
    if days:
        out += f"{days}d"
    if hours:
        out += f"{hours}h"
    if minutes:
        out += f"{minutes}m"
    if seconds or not out:
        out += f"{seconds:g}s"
    return out


def str_to_duration(duration: str) -> tuple[int, int, int, float]:
    match = _DURATION_RE.fullmatch(duration.strip())
    if not duration.strip() or not match:
        raise ValueError(f"Invalid duration {duration!r}. Expected format like '5m', '300s' or '1h2m3s'.")
    days, hours, minutes, seconds = (float(x or 0) for x in match.groups())
    return int(days), int(hours), int(minutes), seconds


def to_seconds(duration: Union[str, int, float]) -> float:
    if isinstance(duration, (int, float)):
        return float(duration)
    days, hours, minutes, seconds = str_to_duration(duration)
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def kubectl_timeout(duration: Union[str, int, float]) -> str:
    # kubectl only understands Go durations, "300s" is always safe
    return f"{int(to_seconds(duration))}s"


class StopWatch:
    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self.start_time = clock()
        self.end_time = self.start_time
        self.stopped = False

    def restart(self) -> None:
        self.start_time = self._clock()
        self.stopped = False

    def stop(self) -> None:
        self.end_time = self._clock()
        self.stopped = True

    def elapsed(self) -> float:
        end = self.end_time if self.stopped else self._clock()
        return end - self.start_time

    def __str__(self) -> str:
        return duration_to_str(self.elapsed())


class Timer:
    """Deadline that counts down from a target duration.

    `triggered()` becomes true once the duration has passed. The clock is
    injectable so waits can be tested without sleeping.
    """

    def __init__(self, target_duration: Union[str, int, float], clock: Clock = time.monotonic) -> None:
        self.d = to_seconds(target_duration)
        self.stopwatch = StopWatch(clock)

    def reset(self) -> None:
        self.stopwatch.restart()

    def triggered(self) -> bool:
        return self.stopwatch.elapsed() >= self.d

    def remaining(self) -> float:
        return max(0.0, self.d - self.stopwatch.elapsed())

    def elapsed(self) -> float:
        return self.stopwatch.elapsed()

    def target_duration(self) -> str:
        return duration_to_str(self.d)

    def __str__(self) -> str:
        return f"{duration_to_str(min(self.elapsed(), self.d))}/{self.target_duration()}"
