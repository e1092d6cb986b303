"""
Folder <-> gzipped tarball.

Archives store forward-slash relative paths and file modes. Symbolic links
are replaced by the content of their target so the extracted tree contains
no links; a link to a directory is rejected.
"""

import io
import os
import tarfile
from pathlib import Path
from typing import BinaryIO, Union

from artifact_cli.errors import ArchiveError
from artifact_cli.logging_config import configure_module_logging

logger = configure_module_logging("archive")


def _resolve_link(path: str) -> str:
    target = os.path.realpath(path)
    if not os.path.exists(target):
        raise ArchiveError(f"failed to stat symlink target {target} of {path}")
    if os.path.isdir(target):
        raise ArchiveError(
            f"symlink {path} points to a directory, which is not supported"
        )
    return target


def _walk_error(error: OSError):
    raise ArchiveError(f"failed to read {error.filename}: {error}")


def pack(folder: Union[str, Path]) -> bytes:
    """
    Archive a folder into a gzipped tarball in memory.

    Symlinks (including chains of them) and hard links are stored as
    regular files holding the target's content.

    Args:
        folder: Directory to archive; paths in the archive are relative to it

    Returns:
        Compressed tar bytes

    Raises:
        ArchiveError: If the folder is missing or unreadable, or contains a
            link to a directory
    """
    root = os.fspath(folder)
    if not os.path.isdir(root):
        raise ArchiveError(f"folder not found: {root}")

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz", dereference=True) as tar:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_walk_error):
            dirnames.sort()
            for name in sorted(dirnames + filenames):
                path = os.path.join(dirpath, name)
                arcname = Path(os.path.relpath(path, root)).as_posix()

                source = _resolve_link(path) if os.path.islink(path) else path
                try:
                    info = tar.gettarinfo(source, arcname=arcname)
                    if info.isdir():
                        tar.addfile(info)
                    elif info.isfile():
                        with open(source, "rb") as f:
                            tar.addfile(info, f)
                    else:
                        raise ArchiveError(f"unsupported file type: {path}")
                except OSError as e:
                    raise ArchiveError(f"failed to read {path}: {e}")

    data = buffer.getvalue()
    logger.debug(f"Packed {root} into {len(data)} bytes")
    return data


def unpack(stream: Union[bytes, BinaryIO], dest: Union[str, Path]) -> None:
    """
    Extract a gzipped tarball into dest.

    Parent directories are created as needed and each file gets the mode
    recorded in the archive.

    Raises:
        ArchiveError: On unsupported entry types or paths escaping dest
    """
    if isinstance(stream, (bytes, bytearray)):
        stream = io.BytesIO(stream)
    dest_root = os.path.realpath(os.fspath(dest))
    os.makedirs(dest_root, exist_ok=True)

    try:
        with tarfile.open(fileobj=stream, mode="r:gz") as tar:
            for member in tar:
                target = os.path.realpath(os.path.join(dest_root, member.name))
                if target != dest_root and not target.startswith(dest_root + os.sep):
                    raise ArchiveError(f"illegal path in archive: {member.name}")

                if member.isdir():
                    os.makedirs(target, exist_ok=True)
                elif member.isreg():
                    os.makedirs(os.path.dirname(target), exist_ok=True)
                    source = tar.extractfile(member)
                    with open(target, "wb") as out:
                        while True:
                            chunk = source.read(1024 * 1024)
                            if not chunk:
                                break
                            out.write(chunk)
                    os.chmod(target, member.mode & 0o7777)
                else:
                    raise ArchiveError(
                        f"unsupported file type in tar: {member.type!r} ({member.name})"
                    )
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ArchiveError(f"failed to extract tarball: {e}")
