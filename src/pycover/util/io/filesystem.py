"""
File system utilities for pycover.

Provides helper functions for directory creation, writability checks,
whole-file writes and mapping source paths to dotted module names.
"""
import os
import os.path
import tempfile


def ensureDirectoryExists(dirname):
    """
    Ensure that a directory exists, creating it if necessary.

    Creates the directory and all necessary parent directories if they
    don't already exist. Safe to call multiple times.

    Args:
        dirname: Path to the directory to ensure exists
    """
    if not os.path.exists(dirname):
        os.makedirs(dirname, exist_ok=True)


def isWritableDirectory(dirname):
    """
    Check that a directory exists (or can be created) and accepts new files.

    Args:
        dirname: Directory to check

    Returns:
        True if a file can be created inside the directory
    """
    try:
        ensureDirectoryExists(dirname)
    except OSError:
        return False
    return os.path.isdir(dirname) and os.access(dirname, os.W_OK | os.X_OK)


def writeText(path, text):
    """
    Replace the contents of a text file.

    The data is written to a sibling temporary file which is then moved over
    `path`, so readers never observe a half-written file.

    Args:
        path: Destination file
        text: Text to write (UTF-8)

    Raises:
        OSError: If the file cannot be written
    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp = tempfile.mkstemp(prefix=".pycover-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def readText(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def relative(path, root):
    """
    Compute the relative path from root to path.

    Args:
        path: Target path (absolute or relative)
        root: Base directory to compute relative path from

    Returns:
        Relative path from root to path
    """
    return os.path.relpath(path, root)


def moduleNameForPath(path, root=None):
    """
    Dotted module name of a source file.

    Example:
        moduleNameForPath("src/app/util/io.py", "src") -> "app.util.io"
        moduleNameForPath("src/app/__init__.py", "src") -> "app"

    Args:
        path: Path of a ``.py`` file
        root: Source root the module name is relative to. Defaults to the
            file's own directory.

    Returns:
        Dotted module name
    """
    if root is None:
        root = os.path.dirname(os.path.abspath(path))
    rel = relative(os.path.abspath(path), os.path.abspath(root))
    if rel.startswith(os.pardir):
        rel = os.path.basename(path)

    parts = rel.split(os.sep)
    parts[-1] = os.path.splitext(parts[-1])[0]
    if parts[-1] == "__init__" and len(parts) > 1:
        parts.pop()
    return ".".join(p for p in parts if p and p != os.curdir)
