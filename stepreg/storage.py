"""
@module: stepreg.storage
@depends: joblib
@exports: StoreConfig, ModelStore, MemoryStoreConfig, MemoryStore, FileStoreConfig, FileStore
@data_flow: model state -> named store -> reloaded model state
"""

from __future__ import annotations

import copy
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List

import joblib

logger = logging.getLogger(__name__)


class ModelStore(ABC):
    """Named key-value store holding the persisted state of one model."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Store {self.name!r} is closed")

    def save(self, key: str, obj: Any) -> None:
        self._check_open()
        self._save(key, obj)

    def load(self, key: str) -> Any:
        self._check_open()
        return self._load(key)

    def __contains__(self, key: str) -> bool:
        self._check_open()
        return self._contains(key)

    def is_empty(self) -> bool:
        self._check_open()
        return not self._keys()

    def erase(self) -> None:
        """Delete all persisted data. The store is closed afterwards."""
        self._check_open()
        self._erase()
        self._closed = True
        logger.debug(f"Erased store '{self.name}'")

    def close(self) -> None:
        """Release the store without deleting persisted data."""
        if not self._closed:
            self._closed = True
            logger.debug(f"Closed store '{self.name}'")

    @abstractmethod
    def _save(self, key: str, obj: Any) -> None: ...

    @abstractmethod
    def _load(self, key: str) -> Any: ...

    @abstractmethod
    def _contains(self, key: str) -> bool: ...

    @abstractmethod
    def _keys(self) -> List[str]: ...

    @abstractmethod
    def _erase(self) -> None: ...


class StoreConfig(ABC):
    """Configuration that opens stores by name."""

    @abstractmethod
    def open(self, name: str) -> ModelStore: ...


class MemoryStore(ModelStore):
    """Store backed by a dict owned by its `MemoryStoreConfig`. Values are copied on save and load."""

    def __init__(self, databases: Dict[str, Dict[str, Any]], name: str) -> None:
        super().__init__(name)
        self._databases = databases

    def _save(self, key: str, obj: Any) -> None:
        self._databases.setdefault(self.name, {})[key] = copy.deepcopy(obj)

    def _load(self, key: str) -> Any:
        try:
            obj = self._databases[self.name][key]
        except KeyError:
            raise KeyError(f"Key {key!r} not found in store {self.name!r}") from None
        return copy.deepcopy(obj)

    def _contains(self, key: str) -> bool:
        return key in self._databases.get(self.name, {})

    def _keys(self) -> List[str]:
        return list(self._databases.get(self.name, {}))

    def _erase(self) -> None:
        self._databases.pop(self.name, None)


class MemoryStoreConfig(StoreConfig):
    """
    In-process store configuration.

    Stores opened with the same name from the same config share their data,
    so a model can be reconstructed by a new wrapper object.
    """

    def __init__(self) -> None:
        self._databases: Dict[str, Dict[str, Any]] = {}

    def open(self, name: str) -> MemoryStore:
        return MemoryStore(self._databases, name)

    def names(self) -> List[str]:
        """Names of stores currently holding data."""
        return sorted(n for n, data in self._databases.items() if data)


class FileStore(ModelStore):
    """Store writing one joblib file per key under a directory."""

    def __init__(self, directory: Path, name: str) -> None:
        super().__init__(name)
        self.directory = directory

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.joblib"

    def _save(self, key: str, obj: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        joblib.dump(obj, self._path(key))

    def _load(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            raise KeyError(f"Key {key!r} not found in store {self.name!r}")
        return joblib.load(path)

    def _contains(self, key: str) -> bool:
        return self._path(key).exists()

    def _keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return [p.stem for p in self.directory.glob("*.joblib")]

    def _erase(self) -> None:
        if self.directory.exists():
            shutil.rmtree(self.directory)


class FileStoreConfig(StoreConfig):
    """File-backed store configuration: one directory per store under `root`."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def open(self, name: str) -> FileStore:
        return FileStore(self.root / name, name)

    def names(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir() and any(p.iterdir()))
