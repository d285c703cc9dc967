import concurrent.futures
from typing import Any, Callable, NamedTuple, TypeVar, final

from typing_extensions import override

from dbus_next import Message, Variant
from dbus_next.constants import ErrorType, MessageType
from dbus_next.errors import DBusError

from .DBusConnectionProviders import DBusConnectionProviderBase
from .Logger import log
from .MediaServiceTypes import (
    CAPABILITY_PROPERTIES,
    MAXIMUM_RATE,
    MINIMUM_RATE,
    OBJECT_PATH,
    PROPERTIES_INTERFACE,
    LoopStatus,
    MediaServiceBase,
    MediaServiceSettings,
    MPRISInterface,
    PlaybackStatus,
    PlayerProperty,
    RootProperty,
    default_media_service_settings,
)
from .MediaSessionTypes import (
    Command,
    MediaItem,
    MediaSessionBase,
    MediaSessionListener,
    MediaSupervisorBase,
    PlaybackState,
    PositionInfo,
    RepeatMode,
)
from .MPRISInterfaces import MediaPlayer2Interface, PlayerInterface
from .SessionHandoff import SessionUnavailableError, run_on_session
from .TrackIdentity import NO_TRACK_PATH, new_bus_suffix, track_object_path

T = TypeVar('T')

_LOOP_STATUS_BY_REPEAT_MODE = {
    RepeatMode.ALL: LoopStatus.PLAYLIST,
    RepeatMode.ONE: LoopStatus.TRACK,
    RepeatMode.OFF: LoopStatus.NONE,
}
_REPEAT_MODE_BY_LOOP_STATUS = {status: mode for mode, status in _LOOP_STATUS_BY_REPEAT_MODE.items()}


class PropertyEntry(NamedTuple):
    signature: str
    # value when no session answers, or the whole value for session-free properties
    fallback: Callable[[], Any]
    read: Callable[[MediaSessionBase], Any] | None = None


def _micros_to_millis(micros: int) -> int:
    # truncate toward zero, negative seek offsets included
    return -(-micros // 1000) if micros < 0 else micros // 1000


def _no_track_metadata() -> dict[str, Variant]:
    return {'mpris:trackid': Variant('o', NO_TRACK_PATH)}


def _item_metadata(package_name: str, item: MediaItem, duration_ms: int | None) -> dict[str, Variant]:
    metadata = {
        'mpris:trackid': Variant('o', track_object_path(package_name, item.title or '', item.media_id or '')),
    }
    if duration_ms is not None and duration_ms >= 0:
        metadata['mpris:length'] = Variant('x', duration_ms * 1000)
    if item.title:
        metadata['xesam:title'] = Variant('s', item.title)
    if item.artist:
        metadata['xesam:artist'] = Variant('as', [item.artist])
    if item.album:
        metadata['xesam:album'] = Variant('s', item.album)
    return metadata


# Session readers. Each runs on the session's application loop.

def _read_playback_status(controller: MediaSessionBase) -> str:
    if controller.is_playing:
        return PlaybackStatus.PLAYING.value
    if controller.playback_state == PlaybackState.READY and not controller.play_when_ready:
        return PlaybackStatus.PAUSED.value
    return PlaybackStatus.STOPPED.value


def _read_loop_status(controller: MediaSessionBase) -> str:
    repeat_mode = controller.repeat_mode
    status = _LOOP_STATUS_BY_REPEAT_MODE.get(repeat_mode)
    if status is None:
        raise ValueError(f'Unexpected value: {repeat_mode}')
    return status.value


def _read_shuffle(controller: MediaSessionBase) -> bool:
    if controller.is_command_available(Command.SET_SHUFFLE_MODE):
        return bool(controller.shuffle_mode_enabled)
    return False


def _read_metadata(controller: MediaSessionBase) -> dict[str, Variant]:
    item = controller.current_media_item
    if item is None:
        return _no_track_metadata()
    return _item_metadata(controller.package_name or '', item, controller.content_duration)


def _read_position(controller: MediaSessionBase) -> int:
    if controller.is_command_available(Command.GET_CURRENT_MEDIA_ITEM):
        return controller.current_position * 1000
    return 0


def _read_can_go_next(controller: MediaSessionBase) -> bool:
    return controller.is_command_available(Command.SEEK_TO_NEXT_MEDIA_ITEM) and controller.has_next_media_item()


def _read_can_go_previous(controller: MediaSessionBase) -> bool:
    return controller.is_command_available(Command.SEEK_TO_PREVIOUS_MEDIA_ITEM) and controller.has_previous_media_item()


def _read_can_play_pause(controller: MediaSessionBase) -> bool:
    return controller.is_command_available(Command.PLAY_PAUSE)


def _read_can_seek(controller: MediaSessionBase) -> bool:
    return controller.is_command_available(Command.SEEK_IN_CURRENT_MEDIA_ITEM) and controller.is_current_media_item_seekable


@final
class MediaService(MediaServiceBase, MediaSessionListener):
    def __init__(self, supervisor: MediaSupervisorBase, connection_provider: DBusConnectionProviderBase, settings: MediaServiceSettings | None = None, now_millis: int | None = None):
        super().__init__()
        self._supervisor = supervisor
        self._connection_provider = connection_provider
        self._settings: MediaServiceSettings = settings or default_media_service_settings()
        self._bus_suffix = new_bus_suffix(now_millis)
        self._root_interface = MediaPlayer2Interface(self)
        self._player_interface = PlayerInterface(self)
        self._exported = False

        self._root_properties: dict[RootProperty, PropertyEntry] = {
            RootProperty.CAN_QUIT: PropertyEntry('b', self.can_quit),
            RootProperty.FULLSCREEN: PropertyEntry('b', self.is_fullscreen),
            RootProperty.CAN_SET_FULLSCREEN: PropertyEntry('b', self.can_set_fullscreen),
            RootProperty.CAN_RAISE: PropertyEntry('b', self.can_raise),
            RootProperty.HAS_TRACK_LIST: PropertyEntry('b', self.has_track_list),
            RootProperty.IDENTITY: PropertyEntry('s', self.get_identity),
            RootProperty.SUPPORTED_URI_SCHEMES: PropertyEntry('as', self.get_supported_uri_schemes),
            RootProperty.SUPPORTED_MIME_TYPES: PropertyEntry('as', self.get_supported_mime_types),
        }
        self._player_properties: dict[PlayerProperty, PropertyEntry] = {
            PlayerProperty.PLAYBACK_STATUS: PropertyEntry('s', lambda: PlaybackStatus.STOPPED.value, _read_playback_status),
            PlayerProperty.LOOP_STATUS: PropertyEntry('s', lambda: LoopStatus.NONE.value, _read_loop_status),
            PlayerProperty.RATE: PropertyEntry('d', lambda: 1.0, lambda c: float(c.playback_speed)),
            PlayerProperty.SHUFFLE: PropertyEntry('b', lambda: False, _read_shuffle),
            PlayerProperty.METADATA: PropertyEntry('a{sv}', _no_track_metadata, _read_metadata),
            PlayerProperty.VOLUME: PropertyEntry('d', lambda: 0.0, lambda c: float(c.volume)),
            PlayerProperty.POSITION: PropertyEntry('x', lambda: 0, _read_position),
            PlayerProperty.MINIMUM_RATE: PropertyEntry('d', self.get_minimum_rate),
            PlayerProperty.MAXIMUM_RATE: PropertyEntry('d', self.get_maximum_rate),
            PlayerProperty.CAN_GO_NEXT: PropertyEntry('b', lambda: False, _read_can_go_next),
            PlayerProperty.CAN_GO_PREVIOUS: PropertyEntry('b', lambda: False, _read_can_go_previous),
            PlayerProperty.CAN_PLAY: PropertyEntry('b', lambda: False, _read_can_play_pause),
            PlayerProperty.CAN_PAUSE: PropertyEntry('b', lambda: False, _read_can_play_pause),
            PlayerProperty.CAN_SEEK: PropertyEntry('b', lambda: False, _read_can_seek),
            PlayerProperty.CAN_CONTROL: PropertyEntry('b', self.can_control),
        }

    @property
    def bus_name(self) -> str:
        return f"{self._settings['bus_name_prefix']}.x{self._bus_suffix}"

    @property
    def object_path(self) -> str:
        return OBJECT_PATH

    # Session hand-off

    def _with_session(self, default: T, action: Callable[[MediaSessionBase], T]) -> T:
        controller = self._supervisor.media_controller
        if controller is None:
            return default
        try:
            return run_on_session(controller, lambda: action(controller), self._settings['handoff_timeout'])
        except SessionUnavailableError as e:
            log('debug', f'Media session unavailable, using default: {e}')
            return default

    def _command(self, command: Command, action: Callable[[MediaSessionBase], None]):
        def _gated(controller: MediaSessionBase):
            if controller.is_command_available(command):
                action(controller)
        self._with_session(None, _gated)

    def _value(self, entry: PropertyEntry) -> Any:
        if entry.read is None:
            return entry.fallback()
        return self._with_session(entry.fallback(), entry.read)

    def _player_value(self, prop: PlayerProperty) -> Any:
        return self._value(self._player_properties[prop])

    def _snapshot(self, entries: dict[Any, PropertyEntry]) -> dict[str, Variant]:
        # all session-backed values come from a single hand-off
        values = {tag: entry.fallback() for tag, entry in entries.items()}
        readers = {tag: entry.read for tag, entry in entries.items() if entry.read is not None}
        if readers:
            values = self._with_session(values, lambda c: values | {tag: read(c) for tag, read in readers.items()})
        return {tag.value: Variant(entries[tag].signature, value) for tag, value in values.items()}

    # Lifecycle

    @override
    def sync(self) -> concurrent.futures.Future:
        async def _register(bus):
            if self._exported:
                return
            reply = await bus.request_name(self.bus_name)
            log('debug', f'Requested bus name {self.bus_name}: {reply}')
            bus.export(OBJECT_PATH, self._root_interface)
            bus.export(OBJECT_PATH, self._player_interface)
            bus.add_message_handler(self._handle_properties_message)
            self._exported = True
            log('info', f'MPRIS player exported as {self.bus_name}')
        return self._connection_provider.acquire_dbus_connection(_register)

    @override
    def unsync(self) -> concurrent.futures.Future:
        async def _unregister(bus):
            if not self._exported:
                return
            bus.remove_message_handler(self._handle_properties_message)
            bus.unexport(OBJECT_PATH)
            self._exported = False
            await bus.release_name(self.bus_name)
            log('info', f'MPRIS player {self.bus_name} unexported')
        return self._connection_provider.acquire_dbus_connection(_unregister)

    @override
    def on_reset(self):
        self._emit_properties_changed(PlayerProperty.METADATA)

    # org.mpris.MediaPlayer2

    def can_quit(self) -> bool:
        return False

    def is_fullscreen(self) -> bool:
        return False

    def can_set_fullscreen(self) -> bool:
        return False

    def can_raise(self) -> bool:
        return False

    def has_track_list(self) -> bool:
        return False

    def get_identity(self) -> str:
        return self._settings['identity']

    def get_supported_uri_schemes(self) -> list[str]:
        return []

    def get_supported_mime_types(self) -> list[str]:
        return []

    def raise_(self):
        pass

    def quit(self):
        pass

    # org.mpris.MediaPlayer2.Player properties

    def get_playback_status(self) -> str:
        return self._player_value(PlayerProperty.PLAYBACK_STATUS)

    def get_loop_status(self) -> str:
        return self._player_value(PlayerProperty.LOOP_STATUS)

    def set_loop_status(self, loop_status: str):
        try:
            repeat_mode = _REPEAT_MODE_BY_LOOP_STATUS[LoopStatus(loop_status)]
        except ValueError:
            raise ValueError(f'Unexpected value: {loop_status}') from None
        self._command(Command.SET_REPEAT_MODE, lambda c: c.set_repeat_mode(repeat_mode))

    def get_rate(self) -> float:
        return self._player_value(PlayerProperty.RATE)

    def set_rate(self, rate: float):
        self._command(Command.SET_SPEED_AND_PITCH, lambda c: c.set_playback_speed(float(rate)))

    def is_shuffle(self) -> bool:
        return self._player_value(PlayerProperty.SHUFFLE)

    def set_shuffle(self, shuffle: bool):
        self._command(Command.SET_SHUFFLE_MODE, lambda c: c.set_shuffle_mode_enabled(bool(shuffle)))

    def get_metadata(self) -> dict[str, Variant]:
        return self._player_value(PlayerProperty.METADATA)

    def get_volume(self) -> float:
        return self._player_value(PlayerProperty.VOLUME)

    def set_volume(self, volume: float):
        self._command(Command.SET_VOLUME, lambda c: c.set_volume(float(volume)))

    def get_position(self) -> int:
        return self._player_value(PlayerProperty.POSITION)

    def get_minimum_rate(self) -> float:
        return MINIMUM_RATE

    def get_maximum_rate(self) -> float:
        return MAXIMUM_RATE

    def can_go_next(self) -> bool:
        return self._player_value(PlayerProperty.CAN_GO_NEXT)

    def can_go_previous(self) -> bool:
        return self._player_value(PlayerProperty.CAN_GO_PREVIOUS)

    def can_play(self) -> bool:
        return self._player_value(PlayerProperty.CAN_PLAY)

    def can_pause(self) -> bool:
        return self._player_value(PlayerProperty.CAN_PAUSE)

    def can_seek(self) -> bool:
        return self._player_value(PlayerProperty.CAN_SEEK)

    def can_control(self) -> bool:
        return self._supervisor.media_controller is not None

    # org.mpris.MediaPlayer2.Player methods

    def next(self):
        self._command(Command.SEEK_TO_NEXT_MEDIA_ITEM, lambda c: c.seek_to_next_media_item())

    def previous(self):
        self._command(Command.SEEK_TO_PREVIOUS_MEDIA_ITEM, lambda c: c.seek_to_previous_media_item())

    def pause(self):
        self._command(Command.PLAY_PAUSE, lambda c: c.pause())

    def play_pause(self):
        def _toggle(controller: MediaSessionBase):
            if controller.is_playing:
                controller.pause()
            else:
                controller.play()
        self._command(Command.PLAY_PAUSE, _toggle)

    def stop(self):
        def _stop(controller: MediaSessionBase):
            if controller.is_command_available(Command.STOP):
                controller.stop()
            elif controller.is_command_available(Command.PLAY_PAUSE):
                controller.pause()
        self._with_session(None, _stop)

    def play(self):
        self._command(Command.PLAY_PAUSE, lambda c: c.play())

    def seek(self, offset: int):
        self._command(Command.SEEK_IN_CURRENT_MEDIA_ITEM, lambda c: c.seek_to(c.current_position + _micros_to_millis(offset)))

    def set_position(self, track_id: str, position: int):
        # single current item: the track id is not checked
        self._command(Command.SEEK_IN_CURRENT_MEDIA_ITEM, lambda c: c.seek_to(_micros_to_millis(position)))

    def open_uri(self, uri: str):
        log('debug', f'OpenUri ignored: {uri}')

    # org.freedesktop.DBus.Properties

    def _property_table(self, interface_name: str) -> dict[Any, PropertyEntry] | None:
        if interface_name == MPRISInterface.ROOT:
            return self._root_properties
        if interface_name == MPRISInterface.PLAYER:
            return self._player_properties
        return None

    def _lookup_property(self, interface_name: str, property_name: str) -> PropertyEntry:
        table = self._property_table(interface_name)
        if table is not None:
            tag_type = RootProperty if table is self._root_properties else PlayerProperty
            try:
                return table[tag_type(property_name)]
            except ValueError:
                pass
        raise DBusError(ErrorType.UNKNOWN_PROPERTY, f"cannot get {property_name}")

    def get(self, interface_name: str, property_name: str) -> Any:
        return self._value(self._lookup_property(interface_name, property_name))

    def get_all(self, interface_name: str) -> dict[str, Variant]:
        table = self._property_table(interface_name)
        if table is None:
            return {}
        return self._snapshot(table)

    def set(self, interface_name: str, property_name: str, value: Any):
        raise DBusError(ErrorType.PROPERTY_READ_ONLY, f'cannot set {property_name}')

    def _handle_properties_message(self, msg: Message):
        if msg.message_type != MessageType.METHOD_CALL or msg.path != OBJECT_PATH or msg.interface != PROPERTIES_INTERFACE:
            return False
        if msg.member == 'Get' and msg.signature == 'ss':
            interface_name, property_name = msg.body
            entry = self._lookup_property(interface_name, property_name)
            return Message.new_method_return(msg, "v", [Variant(entry.signature, self._value(entry))])
        if msg.member == 'GetAll' and msg.signature == 's':
            return Message.new_method_return(msg, 'a{sv}', [self.get_all(msg.body[0])])
        if msg.member == 'Set' and msg.signature == 'ssv':
            interface_name, property_name, value = msg.body
            self.set(interface_name, property_name, value)
        return False

    # Session notifications

    def _send(self, message: Message):
        async def _transmit(bus):
            bus.send(message)
        self._connection_provider.acquire_dbus_connection(_transmit)

    def _emit_properties_changed(self, *properties: PlayerProperty):
        changed = self._snapshot({prop: self._player_properties[prop] for prop in properties})
        self._send(Message.new_signal(
            OBJECT_PATH,
            PROPERTIES_INTERFACE,
            'PropertiesChanged',
            'sa{sv}as',
            [MPRISInterface.PLAYER.value, changed, []],
        ))

    @override
    def on_position_discontinuity(self, old_position: PositionInfo, new_position: PositionInfo, reason: int):
        self._send(Message.new_signal(OBJECT_PATH, MPRISInterface.PLAYER.value, 'Seeked', 'x', [new_position.position_ms * 1000]))

    @override
    def on_is_playing_changed(self, is_playing: bool):
        self._emit_properties_changed(PlayerProperty.PLAYBACK_STATUS)

    @override
    def on_play_when_ready_changed(self, play_when_ready: bool, reason: int):
        self._emit_properties_changed(PlayerProperty.PLAYBACK_STATUS)

    @override
    def on_playback_state_changed(self, playback_state: int):
        self._emit_properties_changed(PlayerProperty.PLAYBACK_STATUS)

    @override
    def on_media_item_transition(self, media_item: MediaItem | None, reason: int):
        self._emit_properties_changed(PlayerProperty.METADATA)

    @override
    def on_volume_changed(self, volume: float):
        self._emit_properties_changed(PlayerProperty.VOLUME)

    @override
    def on_available_commands_changed(self, available_commands: frozenset[Command]):
        self._emit_properties_changed(*CAPABILITY_PROPERTIES)
