"""Local UX preferences persisted between runs

Only the last selected category per workspace is stored. The value is a
default for the UI and never authoritative; read and write failures are
logged and otherwise ignored.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


def board_key(workspace_id: str) -> str:
    return f"livelist:board:{workspace_id}"


class LocalPreferences:
    """JSON file backed key/value store"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._values: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._values is None:
            try:
                self._values = json.loads(self.path.read_text(encoding="utf-8"))
            except FileNotFoundError:
                self._values = {}
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
                self._values = {}
        return self._values

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._load(), indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to persist preferences to {self.path}: {e}")

    def get_last_category(self, workspace_id: str) -> Optional[str]:
        return self._load().get(board_key(workspace_id))

    def set_last_category(self, workspace_id: str, category_id: str) -> None:
        values = self._load()
        if values.get(board_key(workspace_id)) == category_id:
            return
        values[board_key(workspace_id)] = category_id
        self._save()
