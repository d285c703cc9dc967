from abc import ABC, abstractmethod
import concurrent.futures
from enum import Enum
from typing import TypedDict

OBJECT_PATH = '/org/mpris/MediaPlayer2'
PROPERTIES_INTERFACE = 'org.freedesktop.DBus.Properties'

MINIMUM_RATE = 0.25
MAXIMUM_RATE = 2.0


class MPRISInterface(str, Enum):
    ROOT = 'org.mpris.MediaPlayer2'
    PLAYER = 'org.mpris.MediaPlayer2.Player'


class RootProperty(str, Enum):
    CAN_QUIT = 'CanQuit'
    FULLSCREEN = 'Fullscreen'
    CAN_SET_FULLSCREEN = 'CanSetFullscreen'
    CAN_RAISE = 'CanRaise'
    HAS_TRACK_LIST = 'HasTrackList'
    IDENTITY = 'Identity'
    SUPPORTED_URI_SCHEMES = 'SupportedUriSchemes'
    SUPPORTED_MIME_TYPES = 'SupportedMimeTypes'


class PlayerProperty(str, Enum):
    PLAYBACK_STATUS = 'PlaybackStatus'
    LOOP_STATUS = 'LoopStatus'
    RATE = 'Rate'
    SHUFFLE = 'Shuffle'
    METADATA = 'Metadata'
    VOLUME = 'Volume'
    POSITION = 'Position'
    MINIMUM_RATE = 'MinimumRate'
    MAXIMUM_RATE = 'MaximumRate'
    CAN_GO_NEXT = 'CanGoNext'
    CAN_GO_PREVIOUS = 'CanGoPrevious'
    CAN_PLAY = 'CanPlay'
    CAN_PAUSE = 'CanPause'
    CAN_SEEK = 'CanSeek'
    CAN_CONTROL = 'CanControl'


CAPABILITY_PROPERTIES = (
    PlayerProperty.CAN_GO_NEXT,
    PlayerProperty.CAN_GO_PREVIOUS,
    PlayerProperty.CAN_PLAY,
    PlayerProperty.CAN_PAUSE,
    PlayerProperty.CAN_SEEK,
    PlayerProperty.CAN_CONTROL,
)


class PlaybackStatus(str, Enum):
    PLAYING = 'Playing'
    PAUSED = 'Paused'
    STOPPED = 'Stopped'


class LoopStatus(str, Enum):
    NONE = 'None'
    TRACK = 'Track'
    PLAYLIST = 'Playlist'


class MediaServiceSettings(TypedDict):
    identity: str
    bus_name_prefix: str
    handoff_timeout: float


def default_media_service_settings() -> MediaServiceSettings:
    return MediaServiceSettings(
        identity='Android',
        bus_name_prefix=MPRISInterface.ROOT.value,
        handoff_timeout=2.0,
    )


class MediaServiceBase(ABC):
    @abstractmethod
    def sync(self) -> concurrent.futures.Future: pass
    @abstractmethod
    def unsync(self) -> concurrent.futures.Future: pass
    @abstractmethod
    def on_reset(self): pass
