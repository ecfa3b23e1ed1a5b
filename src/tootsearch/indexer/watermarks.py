"""
Per-hashtag watermark of the newest status already indexed.
"""
import json
import logging
import os
import threading

from tootsearch.common.errors import PersistenceError
from tootsearch.common.utils import parse_status_id

logger = logging.getLogger("watermarks")


class WatermarkStore:
    """
    Maps hashtag -> newest indexed status ID, persisted as a JSON file.

    A missing entry means the hashtag was never scanned. Watermarks only
    move forward. Every advance rewrites the file through a temporary file
    and os.replace, so a crash leaves either the old or the new mapping.
    """
    def __init__(self, path):
        self.path = path
        self._marks = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self):
        if not os.path.exists(self.path):
            logger.info(f"No watermark file at {self.path}, every hashtag starts from full history")
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Error reading watermarks from {self.path}: {e}") from e

        if not isinstance(raw, dict):
            raise PersistenceError(f"Watermark file {self.path} must contain a JSON object")
        for topic, value in raw.items():
            status_id = parse_status_id(value)
            if status_id is None:
                logger.warning(f"Ignoring invalid watermark for #{topic}: {value!r}")
                continue
            self._marks[topic] = status_id
        logger.info(f"Loaded {len(self._marks)} watermarks from {self.path}")

    def get(self, topic):
        with self._lock:
            return self._marks.get(topic)

    def snapshot(self):
        with self._lock:
            return dict(self._marks)

    def advance(self, topic, newest_id):
        """
        Move the watermark of topic to newest_id and persist.

        Returns False when newest_id is not ahead of the current watermark.
        The in-memory value stays advanced even if saving fails.
        """
        with self._lock:
            current = self._marks.get(topic)
            if current is not None and newest_id <= current:
                logger.debug(f"Watermark for #{topic} stays at {current} (offered {newest_id})")
                return False
            self._marks[topic] = newest_id
            self._save()
        logger.info(f"Watermark for #{topic} advanced {current} -> {newest_id}")
        return True

    def _save(self):
        tmp = f"{self.path}.tmp"
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            with open(tmp, 'w', encoding='utf-8') as f:
                # IDs as strings, like the API returns them
                json.dump({t: str(i) for t, i in self._marks.items()}, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceError(f"Error saving watermarks to {self.path}: {e}") from e
