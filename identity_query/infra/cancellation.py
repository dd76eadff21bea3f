from __future__ import annotations

import threading


class OperationCancelledError(Exception):
    pass


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a running read.

    The document store checks the token before it issues a query and again once
    the rows are in, so a cancelled operation never hands back a partial result.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("operation cancelled")


def raise_if_cancelled(token: CancellationToken | None) -> None:
    if token is not None:
        token.raise_if_cancelled()
