"""Cooperative cancellation for batch operations."""


class CancellationToken:
    """Flag handed to a batch loop and checked between items.

    Setting the flag stops the loop from starting new work. A provider call
    that is already awaiting is not interrupted.
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"
