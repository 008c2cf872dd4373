import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Listeners:
    """Callback registry for published-state changes.

    Several observers may subscribe to the same manager; each ``add`` returns a
    function that removes that callback again.
    """

    def __init__(self) -> None:
        self._callbacks: list[Callable[[Any], None]] = []

    def add(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def notify(self, value: Any) -> None:
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception:
                logger.error("Listener %r raised while handling an update", callback, exc_info=True)

    def __len__(self) -> int:
        return len(self._callbacks)
