from typing import Protocol


class OutputLines(Protocol):
    """Digital outputs addressed by symbolic pin name (e.g. "GPIO25")."""

    simulated: bool

    def set_high(self, pin_name: str) -> None:
        """Drive the line active."""

    def set_low(self, pin_name: str) -> None:
        """Drive the line inactive."""

    def release(self) -> None:
        """Give all lines back to the kernel."""
