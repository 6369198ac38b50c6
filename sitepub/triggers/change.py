"""Change detection trigger for the site configuration object."""

import hashlib
from typing import Optional

from rich.console import Console

from ..errors import KeyNotFoundError
from ..models import RunRequest
from ..storage import ContentStore

console = Console()


class ConfigChangeTrigger:
    """Fire a build-only run when the watched object is created or modified.

    The first poll records a baseline and never fires. Deleting the object
    does not fire either; recreating it does.
    """

    def __init__(self, store: ContentStore, key: str = "hugo/config.yml") -> None:
        self.store = store
        self.key = key
        self._fingerprint: Optional[str] = None
        self._primed = False

    def _current(self) -> Optional[str]:
        try:
            return hashlib.sha256(self.store.get(self.key)).hexdigest()
        except KeyNotFoundError:
            return None

    def poll(self) -> Optional[RunRequest]:
        """Check the object and return a request when it changed."""
        current = self._current()
        previous = self._fingerprint
        self._fingerprint = current

        if not self._primed:
            self._primed = True
            return None
        if current is None or current == previous:
            return None

        console.print(f"[cyan]Detected change of {self.key}[/cyan]")
        return RunRequest(is_draft=False, build_only=True, source="config-change")
