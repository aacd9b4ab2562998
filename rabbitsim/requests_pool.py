"""Pool of outstanding bus requests issued by a processor wrapper."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

log = logging.getLogger(__name__)

UNSET_DATA = 0xDEADDEAD
"""Value a request carries as received data until its response arrives."""


class PoolError(RuntimeError):
    """The pool cannot satisfy an operation."""


@dataclass(eq=False)
class WrapperRequest:
    """One transaction slot, identified on the bus by its transaction id."""

    tid: int
    done: bool = False
    write: bool = False
    rcv_data: int = UNSET_DATA
    ropcode: int = 0
    _busy: bool = field(default=False, repr=False)


class RequestPool:
    """A fixed set of requests, handed out most recently freed first."""

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("request count cannot be negative")
        # The head of each list is its last element.
        self._free = [WrapperRequest(tid=(i + 1) & 0xFF) for i in reversed(range(count))]
        self._busy: list[WrapperRequest] = []

    def get_new_request(self, wait_empty: bool = False) -> WrapperRequest:
        """Take a free request and mark it busy.

        With ``wait_empty`` the pool must have no busy request, since there is
        nothing to wait on here; otherwise PoolError is raised.
        """
        if wait_empty and self._busy:
            raise PoolError("requests are still outstanding")
        if not self._free:
            raise PoolError("no request available")
        rq = self._free.pop()
        self._busy.append(rq)
        rq._busy = True
        rq.done = False
        rq.rcv_data = UNSET_DATA
        return rq

    def get_request_by_tid(self, tid: int) -> Optional[WrapperRequest]:
        """Return the busy request with transaction id ``tid``, or None."""
        tid &= 0xFF
        return next((rq for rq in reversed(self._busy) if rq.tid == tid), None)

    def free_request(self, rq: WrapperRequest) -> None:
        """Return a busy request to the pool."""
        if not rq._busy or rq not in self._busy:
            raise PoolError(f"cannot find request with tid {rq.tid} among busy requests")
        self._busy.remove(rq)
        rq._busy = False
        self._free.append(rq)
        if not self._busy:
            log.debug("request pool is empty")

    def is_empty(self) -> bool:
        """Whether no request is outstanding."""
        return not self._busy