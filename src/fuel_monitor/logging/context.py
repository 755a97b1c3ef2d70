"""Log context enrichment utilities."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import structlog


@contextmanager
def log_context(**kwargs: object) -> Iterator[None]:
    """Bind keys to the task-local logging context for the duration of a block.

    Previous values are restored on exit, so nested device contexts inside a
    capture run do not leak into sibling tasks.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
