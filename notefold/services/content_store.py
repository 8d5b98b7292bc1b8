# -*- coding: utf-8 -*-
"""
File-system backed hierarchical content store

All paths are store-relative, forward-slash strings ("summarized_notes/biology/
What is ATP?.md"); normalize_path collapses duplicate and trailing slashes so
callers can join segments with f-strings. Operations raise the usual OSError
subclasses (FileNotFoundError, FileExistsError) and never overwrite on rename,
which the atomic answer-record update relies on.

Examples:
    from notefold.services.content_store import FileSystemContentStore

    store = FileSystemContentStore("vault/")
    store.create_folder("summarized_notes/biology")
    store.write("summarized_notes/biology/What is ATP?.md", text)
    files, folders = store.list("summarized_notes")
"""
# Standard library
import json
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """'a//b/' -> 'a/b'; backslashes become forward slashes."""
    path = path.replace('\\', '/')
    path = re.sub(r'/+', '/', path)
    return path.strip('/')


class FileSystemContentStore:
    """
    Content store rooted at a directory on disk.

    Args:
        root: Directory every store path is resolved against
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Content store rooted at {self.root}")

    def _abs(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def _rel(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    # ------------------------------------------------------------------
    # Files and folders
    # ------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def is_folder(self, path: str) -> bool:
        return self._abs(path).is_dir()

    def read(self, path: str) -> str:
        return self._abs(path).read_text(encoding='utf-8')

    def write(self, path: str, content: str) -> None:
        """Create or overwrite a file; parent folders are created."""
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding='utf-8')

    def create_folder(self, path: str) -> None:
        self._abs(path).mkdir(parents=True, exist_ok=True)

    def rename(self, old_path: str, new_path: str) -> None:
        """
        Move a file or folder.

        Raises:
            FileNotFoundError: source missing
            FileExistsError: destination already exists
        """
        source, target = self._abs(old_path), self._abs(new_path)
        if not source.exists():
            raise FileNotFoundError(f"Cannot rename missing path: {old_path}")
        if target.exists() and source != target:
            raise FileExistsError(f"Rename target already exists: {new_path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        os.rename(source, target)

    def remove(self, path: str) -> None:
        self._abs(path).unlink()

    def remove_folder(self, path: str) -> None:
        shutil.rmtree(self._abs(path))

    def list(self, folder: str) -> Tuple[List[str], List[str]]:
        """Direct children of `folder` as (files, folders), sorted."""
        base = self._abs(folder)
        files, folders = [], []
        for child in sorted(base.iterdir()):
            (folders if child.is_dir() else files).append(self._rel(child))
        return files, folders

    def list_markdown_files(self, folder: str = '', extension: str = '.md') -> List[str]:
        """Every note below `folder`, recursively, in path order."""
        base = self._abs(folder)
        if not base.exists():
            return []
        return sorted(self._rel(p) for p in base.rglob(f'*{extension}') if p.is_file())

    def find_file_by_name(self, name: str, under: str = '') -> Optional[str]:
        """First file named exactly `name` below `under`, or None."""
        base = self._abs(under)
        if not base.exists():
            return None
        for match in sorted(base.rglob('*')):
            if match.is_file() and match.name == name:
                return self._rel(match)
        return None

    # ------------------------------------------------------------------
    # Key-value settings
    # ------------------------------------------------------------------

    def read_json(self, path: str) -> Optional[Any]:
        """Parsed JSON at `path`, or None if the file does not exist."""
        target = self._abs(path)
        if not target.exists():
            return None
        with open(target, 'r', encoding='utf-8') as f:
            return json.load(f)

    def write_json(self, path: str, data: Any) -> None:
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False)
