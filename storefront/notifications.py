"""Toast-style notifications and the sign-in redirect signal.

The engines never raise into the page; they report outcomes here and the page
renders whatever is in ``Notifier.toasts``.
"""
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from storefront.core.config import settings

logger = logging.getLogger(__name__)


class Level(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Toast:
    id: int
    level: Level
    message: str


class Notifier:
    def __init__(self, limit: Optional[int] = None):
        self.limit = limit if limit is not None else settings.TOAST_LIMIT
        self.toasts: List[Toast] = []
        self.redirect_to: Optional[str] = None
        self._ids = itertools.count(1)

    def push(self, level: Level, message: str) -> Toast:
        toast = Toast(id=next(self._ids), level=level, message=message)
        self.toasts.append(toast)
        # oldest toasts fall off first
        if self.limit > 0 and len(self.toasts) > self.limit:
            del self.toasts[: len(self.toasts) - self.limit]
        return toast

    def info(self, message: str) -> Toast:
        return self.push(Level.INFO, message)

    def success(self, message: str) -> Toast:
        return self.push(Level.SUCCESS, message)

    def error(self, message: str) -> Toast:
        logger.warning("toast: %s", message)
        return self.push(Level.ERROR, message)

    def dismiss(self, toast_id: int) -> bool:
        for i, toast in enumerate(self.toasts):
            if toast.id == toast_id:
                del self.toasts[i]
                return True
        return False

    def clear(self) -> None:
        self.toasts.clear()

    @property
    def latest(self) -> Optional[Toast]:
        return self.toasts[-1] if self.toasts else None

    def messages(self, level: Optional[Level] = None) -> List[str]:
        return [t.message for t in self.toasts if level is None or t.level == level]

    def require_sign_in(self, url: str) -> None:
        logger.info("redirecting to sign-in: %s", url)
        self.redirect_to = url
