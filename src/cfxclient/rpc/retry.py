"""Retrying decorator for any Transport."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ..errors import RetryExhaustedError, TransportError
from .transport import BatchElem, Transport

log = logging.getLogger(__name__)

# A zero interval would hammer a busy node.
DEFAULT_RETRY_INTERVAL = 1.0


class RetryingTransport:
    """
    Wrap a transport with bounded, fixed-interval retries.

    Args:
        inner: Transport to delegate to
        retry_count: Additional attempts after the first failure (0 disables retry)
        interval: Seconds to sleep between attempts; 1 second if not given
    """

    def __init__(self, inner: Optional[Transport], retry_count: int, interval: Optional[float] = None) -> None:
        if retry_count < 0:
            raise ValueError(f"retry_count must be non-negative, got {retry_count}")
        self.inner = inner
        self.retry_count = retry_count
        self.interval = interval if interval else DEFAULT_RETRY_INTERVAL

    def _on_retry(self, describe: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            log.warning(
                "%s failed (%s), retry %d/%d in %.2fs",
                describe,
                retry_state.outcome.exception(),
                retry_state.attempt_number,
                self.retry_count,
                self.interval,
            )

        return before_sleep

    def _with_retry(self, describe: str, op: Callable[[Transport], Any]) -> Any:
        inner = self.inner
        if inner is None:
            raise TransportError("transport is closed")
        if self.retry_count == 0:
            return op(inner)

        attempts = self.retry_count + 1
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(self.interval),
            retry=retry_if_exception_type(TransportError),
            before_sleep=self._on_retry(describe),
        )
        try:
            return retrying(op, inner)
        except RetryError as exc:
            raise RetryExhaustedError(
                f"timeout when {describe}: still failing after {attempts} attempts",
                attempts=attempts,
            ) from exc.last_attempt.exception()

    def call(self, method: str, *args: Any) -> Any:
        return self._with_retry(
            f"call {method} with args {list(args)!r}",
            lambda inner: inner.call(method, *args),
        )

    def batch_call(self, elems: list[BatchElem]) -> None:
        describe = "batch call " + ", ".join(f"{e.method}{list(e.args)!r}" for e in elems)
        self._with_retry(describe, lambda inner: inner.batch_call(elems))

    def close(self) -> None:
        if self.inner is not None:
            self.inner.close()
            self.inner = None
