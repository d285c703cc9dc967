from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from typing_extensions import override

from .Logger import log

if TYPE_CHECKING:
    from .MediaServiceTypes import MediaServiceBase


class Command(IntEnum):
    """Session commands whose availability gates the matching MPRIS operation."""
    PLAY_PAUSE = 1
    STOP = 3
    SEEK_IN_CURRENT_MEDIA_ITEM = 5
    SEEK_TO_PREVIOUS_MEDIA_ITEM = 6
    SEEK_TO_NEXT_MEDIA_ITEM = 8
    SET_SPEED_AND_PITCH = 13
    SET_SHUFFLE_MODE = 14
    SET_REPEAT_MODE = 15
    GET_CURRENT_MEDIA_ITEM = 16
    SET_VOLUME = 24


class PlaybackState(IntEnum):
    IDLE = 1
    BUFFERING = 2
    READY = 3
    ENDED = 4


class RepeatMode(IntEnum):
    OFF = 0
    ONE = 1
    ALL = 2


@dataclass(frozen=True)
class MediaItem:
    media_id: str = ""
    title: str | None = None
    artist: str | None = None
    album: str | None = None


@dataclass(frozen=True)
class PositionInfo:
    position_ms: int
    media_item: MediaItem | None = None


class MediaSessionListener:
    # Session change notifications. Every callback runs on the session's application loop.
    def on_position_discontinuity(self, old_position: PositionInfo, new_position: PositionInfo, reason: int): pass
    def on_is_playing_changed(self, is_playing: bool): pass
    def on_play_when_ready_changed(self, play_when_ready: bool, reason: int): pass
    def on_playback_state_changed(self, playback_state: int): pass
    def on_media_item_transition(self, media_item: MediaItem | None, reason: int): pass
    def on_volume_changed(self, volume: float): pass
    def on_available_commands_changed(self, available_commands: frozenset[Command]): pass


class MediaSessionBase(ABC):
    # single-threaded: every read and command must run on application_loop
    @property
    @abstractmethod
    def application_loop(self) -> asyncio.AbstractEventLoop: pass

    @property
    @abstractmethod
    def package_name(self) -> str: pass

    @property
    @abstractmethod
    def is_playing(self) -> bool: pass

    @property
    @abstractmethod
    def playback_state(self) -> int: pass

    @property
    @abstractmethod
    def play_when_ready(self) -> bool: pass

    @property
    @abstractmethod
    def repeat_mode(self) -> int: pass

    @property
    @abstractmethod
    def playback_speed(self) -> float: pass

    @property
    @abstractmethod
    def shuffle_mode_enabled(self) -> bool: pass

    @property
    @abstractmethod
    def volume(self) -> float: pass

    @property
    @abstractmethod
    def current_position(self) -> int: pass

    @property
    @abstractmethod
    def content_duration(self) -> int | None: pass

    @property
    @abstractmethod
    def current_media_item(self) -> MediaItem | None: pass

    @property
    @abstractmethod
    def is_current_media_item_seekable(self) -> bool: pass

    @abstractmethod
    def is_command_available(self, command: Command) -> bool: pass
    @abstractmethod
    def has_next_media_item(self) -> bool: pass
    @abstractmethod
    def has_previous_media_item(self) -> bool: pass

    @abstractmethod
    def play(self): pass
    @abstractmethod
    def pause(self): pass
    @abstractmethod
    def stop(self): pass
    @abstractmethod
    def seek_to(self, position_ms: int): pass
    @abstractmethod
    def seek_to_next_media_item(self): pass
    @abstractmethod
    def seek_to_previous_media_item(self): pass
    @abstractmethod
    def set_repeat_mode(self, repeat_mode: RepeatMode): pass
    @abstractmethod
    def set_shuffle_mode_enabled(self, enabled: bool): pass
    @abstractmethod
    def set_playback_speed(self, speed: float): pass
    @abstractmethod
    def set_volume(self, volume: float): pass

    @abstractmethod
    def add_listener(self, listener: MediaSessionListener): pass
    @abstractmethod
    def remove_listener(self, listener: MediaSessionListener): pass


class MediaSupervisorBase(ABC):
    @property
    @abstractmethod
    def media_controller(self) -> MediaSessionBase | None: pass


class MediaSupervisor(MediaSupervisorBase):
    def __init__(self):
        super().__init__()
        self._media_controller: MediaSessionBase | None = None
        self._services: list["MediaServiceBase"] = []

    @property
    @override
    def media_controller(self) -> MediaSessionBase | None:
        return self._media_controller

    def add_media_service(self, service: "MediaServiceBase"):
        self._services.append(service)
        if self._media_controller is not None and isinstance(service, MediaSessionListener):
            self._media_controller.add_listener(service)

    def bind(self, media_controller: MediaSessionBase | None):
        """Replace the current session and tell every service about it."""
        old = self._media_controller
        if old is media_controller:
            return
        for service in self._services:
            if not isinstance(service, MediaSessionListener):
                continue
            if old is not None:
                old.remove_listener(service)
            if media_controller is not None:
                media_controller.add_listener(service)
        self._media_controller = media_controller
        log('debug', f'Media session rebound: {type(old).__name__} -> {type(media_controller).__name__}')
        for service in self._services:
            service.on_reset()
