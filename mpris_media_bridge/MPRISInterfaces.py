# dbus-next reads D-Bus signatures from the annotations at class creation time,
# so this module must not use `from __future__ import annotations`.
from typing import TYPE_CHECKING

from dbus_next.constants import PropertyAccess
from dbus_next.service import ServiceInterface, dbus_property, method, signal

from .MediaServiceTypes import MPRISInterface

if TYPE_CHECKING:
    from .MediaService import MediaService


class MediaPlayer2Interface(ServiceInterface):
    def __init__(self, service: "MediaService"):
        super().__init__(MPRISInterface.ROOT.value)
        self._service = service

    def _get(self, name: str):
        return self._service.get(MPRISInterface.ROOT.value, name)

    @method()
    def Raise(self):
        self._service.raise_()

    @method()
    def Quit(self):
        self._service.quit()

    @dbus_property(access=PropertyAccess.READ)
    def CanQuit(self) -> 'b':
        return self._get('CanQuit')

    @dbus_property(access=PropertyAccess.READ)
    def Fullscreen(self) -> 'b':
        return self._get('Fullscreen')

    @dbus_property(access=PropertyAccess.READ)
    def CanSetFullscreen(self) -> 'b':
        return self._get('CanSetFullscreen')

    @dbus_property(access=PropertyAccess.READ)
    def CanRaise(self) -> 'b':
        return self._get('CanRaise')

    @dbus_property(access=PropertyAccess.READ)
    def HasTrackList(self) -> 'b':
        return self._get('HasTrackList')

    @dbus_property(access=PropertyAccess.READ)
    def Identity(self) -> 's':
        return self._get('Identity')

    @dbus_property(access=PropertyAccess.READ)
    def SupportedUriSchemes(self) -> 'as':
        return self._get('SupportedUriSchemes')

    @dbus_property(access=PropertyAccess.READ)
    def SupportedMimeTypes(self) -> 'as':
        return self._get('SupportedMimeTypes')


class PlayerInterface(ServiceInterface):
    def __init__(self, service: "MediaService"):
        super().__init__(MPRISInterface.PLAYER.value)
        self._service = service

    def _get(self, name: str):
        return self._service.get(MPRISInterface.PLAYER.value, name)

    @method()
    def Next(self):
        self._service.next()

    @method()
    def Previous(self):
        self._service.previous()

    @method()
    def Pause(self):
        self._service.pause()

    @method()
    def PlayPause(self):
        self._service.play_pause()

    @method()
    def Stop(self):
        self._service.stop()

    @method()
    def Play(self):
        self._service.play()

    @method()
    def Seek(self, Offset: 'x'):
        self._service.seek(Offset)

    @method()
    def SetPosition(self, TrackId: 'o', Position: 'x'):
        self._service.set_position(TrackId, Position)

    @method()
    def OpenUri(self, Uri: 's'):
        self._service.open_uri(Uri)

    # Emitted by MediaService through the connection provider; declared for introspection.
    @signal()
    def Seeked(self) -> 'x':
        return self._get('Position')

    @dbus_property(access=PropertyAccess.READ)
    def PlaybackStatus(self) -> 's':
        return self._get('PlaybackStatus')

    @dbus_property(access=PropertyAccess.READ)
    def LoopStatus(self) -> 's':
        return self._get('LoopStatus')

    @dbus_property(access=PropertyAccess.READ)
    def Rate(self) -> 'd':
        return self._get('Rate')

    @dbus_property(access=PropertyAccess.READ)
    def Shuffle(self) -> 'b':
        return self._get('Shuffle')

    @dbus_property(access=PropertyAccess.READ)
    def Metadata(self) -> 'a{sv}':
        return self._get('Metadata')

    @dbus_property(access=PropertyAccess.READ)
    def Volume(self) -> 'd':
        return self._get('Volume')

    @dbus_property(access=PropertyAccess.READ)
    def Position(self) -> 'x':
        return self._get('Position')

    @dbus_property(access=PropertyAccess.READ)
    def MinimumRate(self) -> 'd':
        return self._get('MinimumRate')

    @dbus_property(access=PropertyAccess.READ)
    def MaximumRate(self) -> 'd':
        return self._get('MaximumRate')

    @dbus_property(access=PropertyAccess.READ)
    def CanGoNext(self) -> 'b':
        return self._get('CanGoNext')

    @dbus_property(access=PropertyAccess.READ)
    def CanGoPrevious(self) -> 'b':
        return self._get('CanGoPrevious')

    @dbus_property(access=PropertyAccess.READ)
    def CanPlay(self) -> 'b':
        return self._get('CanPlay')

    @dbus_property(access=PropertyAccess.READ)
    def CanPause(self) -> 'b':
        return self._get('CanPause')

    @dbus_property(access=PropertyAccess.READ)
    def CanSeek(self) -> 'b':
        return self._get('CanSeek')

    @dbus_property(access=PropertyAccess.READ)
    def CanControl(self) -> 'b':
        return self._get('CanControl')
