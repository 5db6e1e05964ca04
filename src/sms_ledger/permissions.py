"""
Read-access permission gate.

The pipeline must hold read access to the message store before it fetches
anything. A gate answers two questions: is access already granted, and if
not, does the user grant it now.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger(__name__)


class PermissionGate(ABC):
    """Boolean capability check/request for reading messages."""

    @abstractmethod
    def check(self) -> bool:
        """Return True if access is already granted."""
        pass

    @abstractmethod
    def request(self) -> bool:
        """Ask for access. Return True if granted."""
        pass


class StaticPermissionGate(PermissionGate):
    """Gate with a fixed answer (scripts, tests, --assume-permission)."""

    def __init__(self, granted: bool = True):
        self.granted = granted

    def check(self) -> bool:
        return self.granted

    def request(self) -> bool:
        return self.granted


class ConsolePermissionGate(PermissionGate):
    """Asks the user on the terminal; a grant lasts for the process."""

    TITLE = "SMS Permission"
    MESSAGE = "We need access to your SMS to display messages."

    def __init__(self, prompt: Callable[[str], str] = input):
        self._prompt = prompt
        self._granted = False

    def check(self) -> bool:
        return self._granted

    def request(self) -> bool:
        try:
            answer = self._prompt(f"{self.TITLE}: {self.MESSAGE} Allow? [y/N] ")
        except EOFError:
            answer = ""
        self._granted = answer.strip().lower() in ("y", "yes")
        logger.info(f"Read permission {'granted' if self._granted else 'denied'}")
        return self._granted
