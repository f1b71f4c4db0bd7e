"""
Runtime recorder called by instrumented code.

Instrumented modules import this module as ``_pycover_invoker`` and call
`invoked` before each instrumented statement. Each process appends the ids it
sees to its own measurement file, ``<data_dir>/pycover.measurements.<pid>``,
one id per line. An id is written at most once per process and data
directory; repeated calls are a set lookup.

`invoked` never raises into the instrumented program. Failures to write are
logged and the id is not retried.
"""

import atexit
import glob
import logging
import os
import threading

LOG = logging.getLogger(__name__)

MEASUREMENT_PREFIX = "pycover.measurements."

_lock = threading.Lock()
_seen = {}    # data_dir -> ids recorded by this process
_writers = {}  # data_dir -> open measurement file


def measurement_file(data_dir, pid=None):
    if pid is None:
        pid = os.getpid()
    return os.path.join(data_dir, "%s%d" % (MEASUREMENT_PREFIX, pid))


def _writer(data_dir):
    f = _writers.get(data_dir)
    if f is None:
        os.makedirs(data_dir, exist_ok=True)
        f = open(measurement_file(data_dir), "a", encoding="ascii")
        _writers[data_dir] = f
    return f


def invoked(id, data_dir):
    """Record that statement `id` ran."""
    seen = _seen.get(data_dir)
    if seen is not None and id in seen:
        return

    with _lock:
        seen = _seen.setdefault(data_dir, set())
        if id in seen:
            return
        seen.add(id)
        try:
            f = _writer(data_dir)
            f.write("%d\n" % id)
            f.flush()
        except OSError as e:
            LOG.warning("could not record statement %d in %s: %s", id, data_dir, e)


def invoked_ids(data_dir):
    """Ids recorded by every process that wrote to `data_dir`."""
    ids = set()
    for path in glob.glob(os.path.join(glob.escape(data_dir), MEASUREMENT_PREFIX + "*")):
        with open(path, "r", encoding="ascii", errors="replace") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    ids.add(int(line))
                except ValueError:
                    # A process killed mid-write leaves a torn last line.
                    LOG.debug("ignoring malformed measurement %r in %s", line, path)
    return ids


def close():
    """Close all measurement files and forget recorded ids."""
    with _lock:
        for f in _writers.values():
            try:
                f.close()
            except OSError as e:
                LOG.warning("could not close measurement file %s: %s", f.name, e)
        _writers.clear()
        _seen.clear()


def _after_fork_in_child():
    global _lock
    # The child writes its own file; the parent's handles stay with the parent.
    _lock = threading.Lock()
    _writers.clear()
    _seen.clear()


atexit.register(close)
if hasattr(os, "register_at_fork"):
    os.register_at_fork(after_in_child=_after_fork_in_child)
