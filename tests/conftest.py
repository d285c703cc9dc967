import asyncio
import threading
from typing import Callable

from typing_extensions import override

import pytest
from dbus_next.constants import ReleaseNameReply, RequestNameReply

from mpris_media_bridge.DBusConnectionProviders import MessageBusConnectionProvider
from mpris_media_bridge.MediaService import MediaService
from mpris_media_bridge.MediaSessionTypes import (
    Command,
    MediaItem,
    MediaSessionBase,
    MediaSessionListener,
    MediaSupervisor,
    PlaybackState,
    RepeatMode,
)
from mpris_media_bridge.SessionHandoff import run_on_session


class FakeSession(MediaSessionBase):
    """In-memory media session that remembers which threads touched it."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self.touched_by: set[int] = set()
        self.listeners: list[MediaSessionListener] = []
        self.commands: set[Command] = set(Command)
        self.package = 'org.example.player'
        self.playing = False
        self.state = PlaybackState.READY
        self.when_ready = False
        self.repeat = RepeatMode.OFF
        self.speed = 1.0
        self.shuffle = False
        self.vol = 0.5
        self.position_ms = 0
        self.duration_ms: int | None = 180_000
        self.item: MediaItem | None = MediaItem(media_id='track-1', title='First Song')
        self.seekable = True
        self.has_next = True
        self.has_previous = True
        self.seeks: list[int] = []
        self.stopped = False

    def _touch(self):
        self.touched_by.add(threading.get_ident())

    def snapshot(self):
        return (self.playing, self.state, self.when_ready, self.repeat, self.speed, self.shuffle,
                self.vol, self.position_ms, tuple(self.seeks), self.stopped, self.item)

    def notify(self, callback: Callable[[MediaSessionListener], None]):
        # deliver a notification the way the platform does: on the session loop
        def _deliver():
            for listener in list(self.listeners):
                callback(listener)
        run_on_session(self, _deliver, timeout=2)

    @property
    @override
    def application_loop(self):
        return self._loop

    @property
    @override
    def package_name(self):
        self._touch()
        return self.package

    @property
    @override
    def is_playing(self):
        self._touch()
        return self.playing

    @property
    @override
    def playback_state(self):
        self._touch()
        return self.state

    @property
    @override
    def play_when_ready(self):
        self._touch()
        return self.when_ready

    @property
    @override
    def repeat_mode(self):
        self._touch()
        return self.repeat

    @property
    @override
    def playback_speed(self):
        self._touch()
        return self.speed

    @property
    @override
    def shuffle_mode_enabled(self):
        self._touch()
        return self.shuffle

    @property
    @override
    def volume(self):
        self._touch()
        return self.vol

    @property
    @override
    def current_position(self):
        self._touch()
        return self.position_ms

    @property
    @override
    def content_duration(self):
        self._touch()
        return self.duration_ms

    @property
    @override
    def current_media_item(self):
        self._touch()
        return self.item

    @property
    @override
    def is_current_media_item_seekable(self):
        self._touch()
        return self.seekable

    @override
    def is_command_available(self, command):
        self._touch()
        return command in self.commands

    @override
    def has_next_media_item(self):
        self._touch()
        return self.has_next

    @override
    def has_previous_media_item(self):
        self._touch()
        return self.has_previous

    @override
    def play(self):
        self._touch()
        self.playing = True
        self.when_ready = True
        self.state = PlaybackState.READY

    @override
    def pause(self):
        self._touch()
        self.playing = False
        self.when_ready = False

    @override
    def stop(self):
        self._touch()
        self.playing = False
        self.when_ready = False
        self.state = PlaybackState.IDLE
        self.stopped = True

    @override
    def seek_to(self, position_ms):
        self._touch()
        self.seeks.append(position_ms)
        self.position_ms = position_ms

    @override
    def seek_to_next_media_item(self):
        self._touch()
        self.item = MediaItem(media_id='track-2', title='Second Song')

    @override
    def seek_to_previous_media_item(self):
        self._touch()
        self.item = MediaItem(media_id='track-0', title='Opening Song')

    @override
    def set_repeat_mode(self, repeat_mode):
        self._touch()
        self.repeat = repeat_mode

    @override
    def set_shuffle_mode_enabled(self, enabled):
        self._touch()
        self.shuffle = enabled

    @override
    def set_playback_speed(self, speed):
        self._touch()
        self.speed = speed

    @override
    def set_volume(self, volume):
        self._touch()
        self.vol = volume

    @override
    def add_listener(self, listener):
        self.listeners.append(listener)

    @override
    def remove_listener(self, listener):
        self.listeners.remove(listener)


class FakeBus:
    """Stands in for dbus_next.aio.MessageBus; records what the service does to it."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.sent = []
        self.exports: dict[str, list] = {}
        self.handlers = []
        self.names: set[str] = set()
        self.connected = True

    async def request_name(self, name, flags=None):
        self.calls.append(('request_name', name))
        self.names.add(name)
        return RequestNameReply.PRIMARY_OWNER

    async def release_name(self, name):
        self.calls.append(('release_name', name))
        self.names.discard(name)
        return ReleaseNameReply.RELEASED

    def export(self, path, interface):
        self.calls.append(('export', path, interface.name))
        self.exports.setdefault(path, []).append(interface)

    def unexport(self, path, interface=None):
        self.calls.append(('unexport', path))
        self.exports.pop(path, None)

    def add_message_handler(self, handler):
        self.calls.append(('add_message_handler',))
        self.handlers.append(handler)

    def remove_message_handler(self, handler):
        self.calls.append(('remove_message_handler',))
        self.handlers.remove(handler)

    def send(self, msg):
        self.sent.append(msg)

    def disconnect(self):
        self.connected = False


def flush(provider):
    """Wait until every callback queued on the provider so far has run."""
    async def _noop(bus):
        pass
    provider.acquire_dbus_connection(_noop).result(timeout=2)


@pytest.fixture
def session_loop():
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    yield loop
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=2)
    loop.close()


@pytest.fixture
def session(session_loop):
    return FakeSession(session_loop)


@pytest.fixture
def bus():
    return FakeBus()


@pytest.fixture
def provider(bus):
    async def _connect():
        return bus
    provider = MessageBusConnectionProvider(bus_factory=_connect)
    yield provider
    provider.cleanup()


@pytest.fixture
def supervisor():
    return MediaSupervisor()


@pytest.fixture
def unbound_service(supervisor, provider):
    service = MediaService(supervisor, provider)
    supervisor.add_media_service(service)
    return service


@pytest.fixture
def service(unbound_service, supervisor, session, provider, bus):
    supervisor.bind(session)
    flush(provider)
    bus.sent.clear()
    return unbound_service
