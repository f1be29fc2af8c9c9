"""
Title Store

Key/value storage of video titles by URL. The evaluation pipeline only
reads from it; the API and CLI expose writes.

Writes are not guaranteed to survive a process restart (a JSON file on an
ephemeral filesystem is an acceptable backing store).
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class TitleStore(ABC):
    """Abstract base class for title stores"""

    @abstractmethod
    def get(self, url: str) -> str | None:
        """Return the stored title for url, or None"""
        pass

    @abstractmethod
    def set(self, url: str, title: str) -> None:
        """Store a title for url"""
        pass


class InMemoryTitleStore(TitleStore):
    """Process-local title store"""

    def __init__(self, titles: dict[str, str] | None = None):
        self._titles = dict(titles or {})
        self._lock = threading.Lock()

    def get(self, url: str) -> str | None:
        with self._lock:
            return self._titles.get(url)

    def set(self, url: str, title: str) -> None:
        with self._lock:
            self._titles[url] = title


class JsonFileTitleStore(TitleStore):
    """
    Title store backed by a JSON object file ({"<url>": "<title>", ...})

    Reads prefer the writable file; when it does not exist yet, the optional
    read-only seed file is used instead. Writes always go to the writable file.
    """

    def __init__(self, path: str | Path, seed_path: str | Path | None = None):
        """
        Args:
            path: Writable JSON file (created on first write)
            seed_path: Read-only JSON file with initial titles (optional)
        """
        self.path = Path(path)
        self.seed_path = Path(seed_path) if seed_path else None
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        for candidate in (self.path, self.seed_path):
            if candidate is None or not candidate.exists():
                continue
            with open(candidate, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"Title store must contain a JSON object: {candidate}")
            return data
        return {}

    def get(self, url: str) -> str | None:
        with self._lock:
            title = self._read().get(url)
        return title if title else None

    def set(self, url: str, title: str) -> None:
        with self._lock:
            data = self._read()
            data[url] = title
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
        logger.info("Stored title for %s", url)
