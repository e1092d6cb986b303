"""Prune a file tree to include/exclude glob rules."""

import os
from typing import List, Optional

from wcmatch import glob

from artifact_cli.errors import SyncError
from artifact_cli.logging_config import configure_module_logging

logger = configure_module_logging("sync.file_filter")

# "**" crosses directories, dotfiles match, {a,b} expands
_GLOB_FLAGS = glob.GLOBSTAR | glob.DOTGLOB | glob.BRACE


class FileFilter:
    """
    Keep files matching any include pattern (all files when there are none)
    and no exclude pattern. Exclude wins over include.

    Patterns are rooted at the filtered directory: "/workshop/**" and
    "workshop/**" both mean everything under <root>/workshop.
    """

    def __init__(
        self,
        include_paths: Optional[List[str]] = None,
        exclude_paths: Optional[List[str]] = None,
    ):
        self.include_paths = list(include_paths or [])
        self.exclude_paths = list(exclude_paths or [])

    @staticmethod
    def _scope(patterns: List[str], root: str) -> List[str]:
        # os.path.join drops root for an absolute pattern
        return [os.path.join(glob.escape(root), p.lstrip("/")) for p in patterns]

    @staticmethod
    def _matches(path: str, patterns: List[str]) -> bool:
        return any(glob.globmatch(path, p, flags=_GLOB_FLAGS) for p in patterns)

    def keep(self, path: str, root: str) -> bool:
        """Whether the file at path survives filtering of root."""
        includes = self._scope(self.include_paths, root)
        excludes = self._scope(self.exclude_paths, root)
        kept = not includes or self._matches(path, includes)
        return kept and not self._matches(path, excludes)

    def apply(self, root: str) -> None:
        """
        Delete unwanted files under root, then directories left empty.

        Raises:
            SyncError: If no file is left at all
        """
        root = os.path.abspath(root)
        removed = 0
        for dirpath, _, filenames in os.walk(root):
            for name in filenames:
                path = os.path.join(dirpath, name)
                if not self.keep(path, root):
                    os.remove(path)
                    removed += 1
        logger.debug(f"Filtered {root}: removed {removed} file(s)")
        _delete_empty_dirs(root, top_level=True)


def _delete_empty_dirs(path: str, top_level: bool = False) -> bool:
    """Remove directories with no files beneath them. Returns True if path keeps files."""
    has_files = False
    with os.scandir(path) as entries:
        children = list(entries)
    for entry in children:
        if entry.is_dir(follow_symlinks=False):
            if _delete_empty_dirs(entry.path):
                has_files = True
        else:
            has_files = True

    if not has_files:
        if top_level:
            raise SyncError("expected to find at least one file within directory")
        os.rmdir(path)
    return has_files
