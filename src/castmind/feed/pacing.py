import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from castmind.config import NeynarConfig
from castmind.errors import TransportError
from castmind.logging import logger

T = TypeVar("T")


def fixed_delay(seconds: float) -> Callable[[int], float]:
    """Delay function that waits the same amount before every request."""
    def _delay(attempt: int) -> float:
        return seconds
    return _delay


@dataclass
class PacingPolicy:
    """
    Pacing between sequential page requests, plus optional per-request retry.

    ``delay(n)`` gives the wait in seconds after request ``n``. ``sleep`` is
    injectable so tests run without blocking.
    """
    delay: Callable[[int], float] = field(default_factory=lambda: fixed_delay(1.0))
    max_attempts: int = 1
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_config(cls, config: NeynarConfig) -> "PacingPolicy":
        return cls(delay=fixed_delay(config.page_delay_seconds), max_attempts=config.max_attempts)

    def wait(self, request_number: int) -> None:
        seconds = self.delay(request_number)
        if seconds > 0:
            self.sleep(seconds)

    def call(self, fn: Callable[[], T]) -> T:
        """Run ``fn``, retrying on TransportError up to ``max_attempts`` times."""
        attempt = 1
        while True:
            try:
                return fn()
            except TransportError as e:
                if attempt >= self.max_attempts:
                    raise
                logger.warning(f"Attempt {attempt}/{self.max_attempts} failed: {e}; retrying")
                self.wait(attempt)
                attempt += 1
