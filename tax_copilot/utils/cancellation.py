"""Cooperative cancellation checkpoints for the pipelines."""

import asyncio


def raise_if_cancelled(cancel_event: asyncio.Event | None) -> None:
    """
    Abort the current flow if the caller has signalled cancellation.

    Raises:
        asyncio.CancelledError: When ``cancel_event`` is set.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise asyncio.CancelledError("Operation cancelled by caller")
