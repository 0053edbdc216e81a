import asyncio
import logging
from typing import Any, Awaitable, Optional

from storefront.errors import Superseded

logger = logging.getLogger(__name__)


class LatestOnly:
    """Runs one load at a time; starting a new load cancels the one in flight.

    Used for detail views, where navigating to another entity makes the
    previous response useless.
    """

    def __init__(self):
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self.pending:
            logger.debug("cancelling superseded load")
            self._task.cancel()

    async def run(self, aw: Awaitable[Any]) -> Any:
        self.cancel()
        task = asyncio.ensure_future(aw)
        self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            if task is not self._task:
                raise Superseded("load superseded by a newer one") from None
            raise
        finally:
            if self._task is task:
                self._task = None
