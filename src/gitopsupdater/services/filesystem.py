"""Filesystem helpers for the GitOps updater."""

import logging
import os
import shutil
import sys
import tempfile
from contextlib import contextmanager
from typing import Iterator

from rich.console import Console

from gitopsupdater.errors import FileWriteError, WorkspaceError


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def create_temp_dir(self, base_dir: str, prefix: str) -> str:
        try:
            os.makedirs(base_dir, exist_ok=True)
            path = os.path.abspath(tempfile.mkdtemp(prefix=prefix, dir=base_dir))
        except OSError as exc:
            raise WorkspaceError(f"failed to create temporary directory in {base_dir}") from exc
        self.logger.debug("Created workspace: %s", path)
        return path

    @contextmanager
    def workspace(self, base_dir: str, prefix: str) -> Iterator[str]:
        """Yields a fresh scratch directory and removes it on every exit path."""
        path = self.create_temp_dir(base_dir, prefix)
        try:
            yield path
        finally:
            self.cleanup_dir(path)

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        os.chmod(path, mode)

    def write_file(self, path: str, content: bytes, mode: int):
        try:
            with open(path, "wb") as file_obj:
                file_obj.write(content)
            self.set_permissions(path, mode)
        except OSError as exc:
            raise FileWriteError(f"failed to write file {path}") from exc
        self.logger.debug("Wrote %s bytes to %s (mode %s)", len(content), path, oct(mode))

    def cleanup_dir(self, path: str):
        if os.path.exists(path):
            try:
                shutil.rmtree(path)
                self.logger.debug("Removed directory: %s", path)
            except Exception as exc:
                message = f"Warning: Could not remove {path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)
