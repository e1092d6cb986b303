import os
import shutil

from artifact_cli.errors import SyncError


def copy_files(source_dir: str, dest_dir: str) -> int:
    """
    Copy every file under source_dir into dest_dir, keeping relative paths
    and file modes. Existing files are overwritten.

    Returns:
        Number of files copied
    """
    copied = 0
    for dirpath, _, filenames in os.walk(source_dir):
        relative = os.path.relpath(dirpath, source_dir)
        target_dir = os.path.normpath(os.path.join(dest_dir, relative))
        try:
            os.makedirs(target_dir, exist_ok=True)
        except OSError as e:
            raise SyncError(f"failed to create destination directory {target_dir}: {e}")
        for name in filenames:
            source = os.path.join(dirpath, name)
            target = os.path.join(target_dir, name)
            try:
                shutil.copyfile(source, target)
                shutil.copymode(source, target)
            except OSError as e:
                raise SyncError(f"failed to copy {source} to {target}: {e}")
            copied += 1
    return copied
