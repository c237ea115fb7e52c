"""JSON File Store - ledger and unlock snapshots as two JSON documents on disk.

Invariants:
    - treasury.json holds the ledger, unlocks.json the unlock records
    - A save stages every document (temp file in the same dir, fsynced)
      before replacing any of them: a serialize or write failure changes
      nothing on disk
    - A missing file means "nothing stored yet"; an unreadable or corrupt file
      raises PersistenceError (never silently reset to zero)
    - All OSError / JSON errors mapped to PersistenceError (core/errors.py)

Design Decisions:
    - Single-writer deployment: no file locking, the last writer wins
    - Unlocks replaced before the ledger: if the process dies between the
      two renames, a charged module is marked charged but the budget keeps
      the money (undercharge once), never charged twice
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from treasury.core.errors import PersistenceError

logger = logging.getLogger(__name__)

LEDGER_FILE = "treasury.json"
UNLOCKS_FILE = "unlocks.json"


class JsonFileTreasuryStore:
    """TreasuryStore backed by two JSON files under `data_dir`."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)
        self.ledger_path = self.data_dir / LEDGER_FILE
        self.unlocks_path = self.data_dir / UNLOCKS_FILE

    def load_ledger(self) -> dict | None:
        return self._read(self.ledger_path)

    def load_unlocks(self) -> dict | None:
        return self._read(self.unlocks_path)

    def save(self, *, ledger: dict | None = None, unlocks: dict | None = None) -> None:
        documents = [(self.unlocks_path, unlocks), (self.ledger_path, ledger)]
        staged: list[tuple[str, Path]] = []
        try:
            for path, data in documents:
                if data is not None:
                    staged.append((self._stage(path, data), path))
            for tmp_name, path in staged:
                os.replace(tmp_name, path)
        except OSError as e:
            logger.error(f"Cannot write treasury file {path}: {e}")
            raise PersistenceError(f"cannot write {path.name}", "write")
        finally:
            for tmp_name, _ in staged:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)

    def _read(self, path: Path) -> dict | None:
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt treasury file {path}: {e}")
            raise PersistenceError(f"{path.name} is not valid JSON", "read")
        except OSError as e:
            logger.error(f"Cannot read treasury file {path}: {e}")
            raise PersistenceError(f"cannot read {path.name}", "read")
        if not isinstance(data, dict):
            raise PersistenceError(f"{path.name} does not hold an object", "read")
        return data

    def _stage(self, path: Path, data: dict) -> str:
        """Write `data` to a fsynced temp file next to `path`. Returns its name."""
        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"snapshot for {path.name} is not JSON-safe: {e}", "serialize")
        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError:
            os.unlink(tmp_name)
            raise
        return tmp_name
