from abc import ABC, abstractmethod
import asyncio
import concurrent.futures
import platform
from threading import Thread
from typing import Any, Awaitable, Callable

from typing_extensions import override

from .Logger import log

if platform.system() == "Linux":
    from dbus_next.aio.message_bus import MessageBus
    from dbus_next.constants import BusType
else:
    MessageBus = None
    BusType = None

ConnectionCallback = Callable[[Any], Awaitable[None]]


class DBusConnectionProviderBase(ABC):
    @abstractmethod
    def acquire_dbus_connection(self, callback: ConnectionCallback) -> concurrent.futures.Future:
        """Run ``callback`` against a live bus connection, on that connection's loop."""
        pass

    @abstractmethod
    def cleanup(self): pass


class MessageBusConnectionProvider(DBusConnectionProviderBase):
    def __init__(self, bus_factory: Callable[[], Awaitable[Any]] | None = None, system_bus: bool = False):
        super().__init__()
        if bus_factory is None:
            if MessageBus is None:
                log('error', 'MessageBusConnectionProvider requires dbus-next, which is not available on this platform.')
                raise NotImplementedError("MessageBusConnectionProvider is not implemented for this platform.")
            bus_type = BusType.SYSTEM if system_bus else BusType.SESSION
            bus_factory = lambda: MessageBus(bus_type=bus_type).connect()

        self._bus_factory = bus_factory
        self._bus = None
        self._loop = asyncio.new_event_loop()
        self._thread = Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self):
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    async def _with_connection(self, callback: ConnectionCallback):
        if self._bus is None:
            self._bus = await self._bus_factory()
            log('debug', 'D-Bus connection established')
        await callback(self._bus)

    @staticmethod
    def _log_failure(future: concurrent.futures.Future):
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log('error', f'D-Bus connection callback failed: {exc!r}')

    @override
    def acquire_dbus_connection(self, callback: ConnectionCallback) -> concurrent.futures.Future:
        if self._loop.is_closed():
            log('warning', 'D-Bus connection provider already cleaned up, dropping callback')
            future = concurrent.futures.Future()
            future.set_exception(RuntimeError('connection provider is closed'))
            return future
        future = asyncio.run_coroutine_threadsafe(self._with_connection(callback), self._loop)
        future.add_done_callback(self._log_failure)
        return future

    @override
    def cleanup(self):
        if self._loop.is_closed():
            return
        if self._bus is not None:
            self._loop.call_soon_threadsafe(self._bus.disconnect)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=2)
        if not self._thread.is_alive():
            self._loop.close()
        self._bus = None
