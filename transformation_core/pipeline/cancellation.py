"""
Cooperative cancellation for pipeline runs.
"""

import threading

from transformation_core.errors import PipelineCancelled


class CancellationToken:
    """
    Cancellation flag checked by the orchestrator between stages and before
    every call into the sink or the repository.

    Example:
        token = CancellationToken()
        worker = threading.Thread(target=orchestrator.process_message,
                                  args=(payload, "application/json", "orders", token))
        worker.start()
        token.cancel()
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            PipelineCancelled: If cancel() has been called
        """
        if self._event.is_set():
            raise PipelineCancelled("Processing was cancelled")
