import logging
from typing import List, Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Notice(BaseModel):
    """A short user-facing message, rendered by the front-end as a toast."""

    title: str
    description: str = ""
    variant: Literal["default", "destructive"] = "default"


class NoticeBoard:
    """Collects notices raised while handling one user action."""

    def __init__(self):
        self._notices: List[Notice] = []

    def success(self, title: str, description: str = "") -> Notice:
        return self._push(Notice(title=title, description=description))

    def info(self, title: str, description: str = "") -> Notice:
        """Non-fatal message; rendered like a success toast."""
        return self._push(Notice(title=title, description=description))

    def error(self, title: str, description: str = "") -> Notice:
        return self._push(Notice(title=title, description=description, variant="destructive"))

    def _push(self, notice: Notice) -> Notice:
        logger.debug(f"Notice raised: {notice.title} ({notice.variant})")
        self._notices.append(notice)
        return notice

    @property
    def notices(self) -> List[Notice]:
        return list(self._notices)

    def drain(self) -> List[Notice]:
        notices, self._notices = self._notices, []
        return notices
