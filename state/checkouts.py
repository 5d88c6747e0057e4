"""
Checkout Cache - учёт scratch-чекаутов git деплоя

One JSON file per site, entries keyed by (site root, remote). Written
atomically under a file lock.
"""

import json
import logging
import os
import shutil
import sys
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List, Union

# Cross-platform file locking
if sys.platform == 'win32':
    import msvcrt

    @contextmanager
    def _file_lock_impl(lock_path: Path):
        """Windows file locking using msvcrt"""
        lock_fd = None
        try:
            lock_fd = open(lock_path, 'w')
            msvcrt.locking(lock_fd.fileno(), msvcrt.LK_NBLCK, 1)
            yield
        finally:
            if lock_fd:
                try:
                    msvcrt.locking(lock_fd.fileno(), msvcrt.LK_UNLCK, 1)
                except OSError:
                    pass
                lock_fd.close()
else:
    import fcntl

    @contextmanager
    def _file_lock_impl(lock_path: Path):
        """Unix file locking using fcntl"""
        lock_fd = None
        try:
            lock_fd = os.open(str(lock_path), os.O_CREAT | os.O_RDWR)
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            yield
        finally:
            if lock_fd is not None:
                fcntl.flock(lock_fd, fcntl.LOCK_UN)
                os.close(lock_fd)


logger = logging.getLogger(__name__)


@dataclass
class CheckoutRecord:
    """Одна запись кэша"""
    site_root: str
    remote: str
    path: str
    branch: Optional[str] = None
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckoutRecord":
        return cls(**data)


class CheckoutCache:
    """Кэш scratch-чекаутов"""

    CACHE_FILE = "checkouts.json"
    LOCK_FILE = ".checkouts.lock"

    def __init__(self, state_dir: Union[str, Path]):
        self.state_dir = Path(state_dir)
        self._lock_file_path = self.state_dir / self.LOCK_FILE

    @property
    def cache_file(self) -> Path:
        return self.state_dir / self.CACHE_FILE

    @staticmethod
    def key(site_root: Union[str, Path], remote: str) -> str:
        return f"{Path(site_root).resolve()}::{remote}"

    @contextmanager
    def _file_lock(self):
        self.state_dir.mkdir(parents=True, exist_ok=True)
        with _file_lock_impl(self._lock_file_path):
            yield

    def _read(self) -> Dict[str, CheckoutRecord]:
        if not self.cache_file.exists():
            return {}
        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return {
                key: CheckoutRecord.from_dict(value)
                for key, value in data.get("checkouts", {}).items()
            }
        except (OSError, ValueError, TypeError) as e:
            # битый кэш = пустой кэш, чекауты будут пересозданы
            logger.warning(f"Ignoring unreadable checkout cache {self.cache_file}: {e}")
            return {}

    def _write(self, records: Dict[str, CheckoutRecord]):
        temp_file = self.cache_file.with_suffix('.tmp')
        payload = {"checkouts": {key: record.to_dict() for key, record in records.items()}}
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_file, self.cache_file)
        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def get(self, site_root: Union[str, Path], remote: str) -> Optional[CheckoutRecord]:
        """Найти запись для (site root, remote)"""
        return self._read().get(self.key(site_root, remote))

    def put(
        self,
        site_root: Union[str, Path],
        remote: str,
        path: Union[str, Path],
        branch: Optional[str] = None
    ) -> CheckoutRecord:
        """Сохранить/обновить запись"""
        record = CheckoutRecord(
            site_root=str(Path(site_root).resolve()),
            remote=remote,
            path=str(path),
            branch=branch,
            updated_at=datetime.now().isoformat()
        )
        with self._file_lock():
            records = self._read()
            records[self.key(site_root, remote)] = record
            self._write(records)
        return record

    def invalidate(self, site_root: Union[str, Path], remote: str, remove: bool = True) -> bool:
        """Удалить запись (и сам чекаут)

        Returns:
            True if an entry existed
        """
        with self._file_lock():
            records = self._read()
            record = records.pop(self.key(site_root, remote), None)
            if record is None:
                return False
            self._write(records)
        if remove:
            shutil.rmtree(record.path, ignore_errors=True)
        logger.info(f"Invalidated scratch checkout for {remote}")
        return True

    def list(self) -> List[CheckoutRecord]:
        return sorted(self._read().values(), key=lambda r: r.updated_at)

    def clear(self, remove: bool = True) -> int:
        """Очистить кэш

        Returns:
            Number of removed entries
        """
        with self._file_lock():
            records = self._read()
            if self.cache_file.exists():
                self.cache_file.unlink()
        if remove:
            for record in records.values():
                shutil.rmtree(record.path, ignore_errors=True)
        return len(records)
