"""
Append-only result sinks.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


class JsonlSink:
    """Writes one JSON object per line, flushing after every record."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.count = 0
        self._file = None

    def open(self):
        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, 'a', encoding='utf-8')
            logger.info(f"Writing results to {self.path}")
        return self

    def push(self, record: Dict[str, Any]):
        if self._file is None:
            self.open()
        self._file.write(json.dumps(record, ensure_ascii=False) + '\n')
        self._file.flush()
        self.count += 1

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()


class MemorySink:
    """Keeps records in a list (dry runs and tests)."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []

    @property
    def count(self) -> int:
        return len(self.records)

    def push(self, record: Dict[str, Any]):
        self.records.append(record)
