"""Fixed-delay restart policy for unhealthy servers.

Automatic restarts wait a constant delay and are capped at a fixed number
of attempts between explicit starts.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FixedBackoff:
    """Fixed-delay restart policy with a hard cap.

    Attributes:
        delay: Seconds to wait before every automatic restart.
        max_retries: Consecutive failed health checks after which the
            server is put in the error state instead of being restarted.
    """

    delay: float = 2.0
    max_retries: int = 3

    def __post_init__(self) -> None:
        if self.delay < 0:
            msg = f"delay must be non-negative, got {self.delay}"
            raise ValueError(msg)
        if self.max_retries < 1:
            msg = f"max_retries must be at least 1, got {self.max_retries}"
            raise ValueError(msg)

    def delay_for(self, attempt: int) -> float:  # noqa: ARG002
        """Return the delay before a restart attempt.

        Args:
            attempt: The attempt number (0-indexed). Ignored, every attempt
                waits the same delay.

        Returns:
            The delay in seconds.
        """
        return self.delay

    def exhausted(self, failures: int) -> bool:
        """Check whether the restart budget is used up.

        Args:
            failures: Consecutive failed health checks so far.

        Returns:
            True if no further automatic restart should be attempted.
        """
        return failures >= self.max_retries
