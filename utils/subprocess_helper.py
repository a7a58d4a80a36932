"""Central runner for blocking calls.

Collectors call run() from here instead of subprocess.run() directly, and
blocking_call() for other calls that can hang on the OS (e.g. statvfs on a
stale network mount). Under eventlet the call is pushed to a real OS thread via
tpool so it never stalls the green-thread hub.
"""
import subprocess

import eventlet.patcher
from eventlet.tpool import execute as _tpool


def blocking_call(func, *args, **kwargs):
    """Call func, offloaded to the eventlet thread pool when patched."""
    if eventlet.patcher.is_monkey_patched('os'):
        return _tpool(func, *args, **kwargs)
    return func(*args, **kwargs)


def run(*args, **kwargs):
    """subprocess.run(), offloaded to the eventlet thread pool when patched."""
    return blocking_call(subprocess.run, *args, **kwargs)
