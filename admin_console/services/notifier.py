"""
Operator notifications: success/error notices, loading indicators and
confirmation prompts. Controllers receive a Notifier instead of reaching for
a global toast/modal manager.
"""

import logging
from dataclasses import dataclass, asdict
from typing import List, Optional

from ..errors import ConsoleError

logger = logging.getLogger("admin_console.notifier")

LEVEL_SUCCESS = "success"
LEVEL_ERROR = "error"
LEVEL_LOADING = "loading"


@dataclass
class Notice:
    level: str
    title: str
    message: str = ""

    def to_dict(self):
        return asdict(self)


class Notifier:
    """Interface; the default implementation only logs"""

    def success(self, message: str) -> None:
        logger.info(message, extra={"component": "notifier"})

    def error(self, title: str, message: str) -> None:
        logger.warning("%s: %s", title, message, extra={"component": "notifier"})

    def loading(self, title: str, message: str = "") -> None:
        logger.debug("%s %s", title, message, extra={"component": "notifier"})

    def close(self) -> None:
        pass

    async def confirm(self, title: str, message: str) -> bool:
        # Never confirm a destructive action on anyone's behalf
        return False

    def api_error(self, error: Exception) -> None:
        """Show a failure verbatim; the title depends on the error kind only"""
        if isinstance(error, ConsoleError):
            self.error(error.title, error.message)
        else:
            self.error(ConsoleError.title, str(error))


class NoticeBoard(Notifier):
    """Collects notices for one request/view and answers prompts with a preset decision.

    ``confirm_answer`` carries an operator's explicit decision made ahead of
    time (e.g. a ``force=true`` query parameter).
    """

    def __init__(self, confirm_answer: bool = False):
        self.confirm_answer = confirm_answer
        self.notices: List[Notice] = []
        self.prompts: List[Notice] = []
        self._loading: Optional[Notice] = None

    @property
    def is_loading(self) -> bool:
        return self._loading is not None

    def success(self, message: str) -> None:
        super().success(message)
        self.notices.append(Notice(LEVEL_SUCCESS, message))

    def error(self, title: str, message: str) -> None:
        super().error(title, message)
        self.notices.append(Notice(LEVEL_ERROR, title, message))

    def loading(self, title: str, message: str = "") -> None:
        super().loading(title, message)
        self._loading = Notice(LEVEL_LOADING, title, message)

    def close(self) -> None:
        self._loading = None

    async def confirm(self, title: str, message: str) -> bool:
        self.prompts.append(Notice("confirm", title, message))
        return self.confirm_answer

    def errors(self) -> List[Notice]:
        return [n for n in self.notices if n.level == LEVEL_ERROR]

    def to_list(self):
        return [n.to_dict() for n in self.notices]
