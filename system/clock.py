import time


class Clock:
    """
    Time source for every timed wait.
    - monotonic() for elapsed-time measurement
    - sleep() for literal blocking waits
    Tests substitute a virtual clock with the same two methods.
    """

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def elapsed_ms(self, since: float) -> int:
        return int(round((self.monotonic() - since) * 1000))


SYSTEM_CLOCK = Clock()
