import asyncio
import concurrent.futures
from typing import Callable, TypeVar

from .MediaSessionTypes import MediaSessionBase

T = TypeVar('T')


class SessionUnavailableError(Exception):
    """The session's application loop could not run the request."""


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def run_on_session(session: MediaSessionBase, action: Callable[[], T], timeout: float) -> T:
    loop = session.application_loop
    if _running_loop() is loop:
        return action()
    if loop.is_closed() or not loop.is_running():
        raise SessionUnavailableError('media session loop is not running')

    future: concurrent.futures.Future[T] = concurrent.futures.Future()

    def _invoke():
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(action())
        except Exception as exc:
            future.set_exception(exc)

    try:
        loop.call_soon_threadsafe(_invoke)
    except RuntimeError as exc:
        # closed between the check and the hand-off
        raise SessionUnavailableError('media session loop is closed') from exc

    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError as exc:
        if future.done():
            # finished between the timeout and this check
            return future.result()
        future.cancel()
        raise SessionUnavailableError(f'media session did not answer within {timeout}s') from exc
