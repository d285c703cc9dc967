from .MediaService import MediaService
from .MediaServiceTypes import (
    MediaServiceBase,
    MediaServiceSettings,
    default_media_service_settings,
)
from .MediaSessionTypes import (
    Command,
    MediaItem,
    MediaSessionBase,
    MediaSessionListener,
    MediaSupervisor,
    MediaSupervisorBase,
    PlaybackState,
    PositionInfo,
    RepeatMode,
)
from .DBusConnectionProviders import DBusConnectionProviderBase, MessageBusConnectionProvider
from .SessionHandoff import SessionUnavailableError, run_on_session
from .TrackIdentity import NO_TRACK_PATH, new_bus_suffix, track_object_path

__all__ = [
    "Command",
    "DBusConnectionProviderBase",
    "MediaItem",
    "MediaService",
    "MediaServiceBase",
    "MediaServiceSettings",
    "MediaSessionBase",
    "MediaSessionListener",
    "MediaSupervisor",
    "MediaSupervisorBase",
    "MessageBusConnectionProvider",
    "NO_TRACK_PATH",
    "PlaybackState",
    "PositionInfo",
    "RepeatMode",
    "SessionUnavailableError",
    "default_media_service_settings",
    "new_bus_suffix",
    "run_on_session",
    "track_object_path",
]
