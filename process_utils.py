"""Child processes that take over the terminal, such as an interactive chat."""
from __future__ import annotations

import atexit
import logging
import subprocess
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set

logger = logging.getLogger(__name__)

_children: Set[subprocess.Popen] = set()


def terminate_process(proc: subprocess.Popen, *, timeout: float = 5.0) -> None:
    if proc.poll() is not None:
        return
    logger.info("stopping pid %s", proc.pid)
    try:
        proc.terminate()
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()


def _reap_children() -> None:
    for proc in list(_children):
        terminate_process(proc)
    _children.clear()


@contextmanager
def foreground_child(cmd: List[str], *, env: Optional[Dict[str, str]] = None) -> Iterator[subprocess.Popen]:
    proc = subprocess.Popen(cmd, env=env)
    _children.add(proc)
    try:
        yield proc
    finally:
        _children.discard(proc)


def run_foreground(cmd: List[str], *, env: Optional[Dict[str, str]] = None) -> int:
    """Hand the terminal to ``cmd`` and return its exit status.

    Ctrl+C belongs to the child while it runs; the parent keeps waiting.
    """
    logger.info("handing terminal to %s", " ".join(cmd))
    with foreground_child(cmd, env=env) as proc:
        while True:
            try:
                code = proc.wait()
                break
            except KeyboardInterrupt:
                continue
    logger.info("%s exited with %d", cmd[0], code)
    return code


atexit.register(_reap_children)
