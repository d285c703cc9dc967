from mpris_media_bridge.MediaSessionTypes import Command


def test_introspection_lists_the_mpris_surface(service):
    root = service._root_interface.introspect()
    player = service._player_interface.introspect()
    assert root.name == 'org.mpris.MediaPlayer2'
    assert {m.name for m in root.methods} == {'Raise', 'Quit'}
    assert len(root.properties) == 8
    assert player.name == 'org.mpris.MediaPlayer2.Player'
    assert {m.name for m in player.methods} == {
        'Next', 'Previous', 'Pause', 'PlayPause', 'Stop', 'Play', 'Seek', 'SetPosition', 'OpenUri',
    }
    assert {s.name for s in player.signals} == {'Seeked'}
    assert len(player.properties) == 15


def test_methods_forward_to_the_service(service, session):
    player = service._player_interface
    player.Play()
    assert session.playing
    player.PlayPause()
    assert not session.playing
    session.position_ms = 1000
    player.Seek(500_000)
    player.SetPosition('/org/example/player/1', 9_000_000)
    assert session.seeks == [1500, 9000]
    player.Next()
    assert session.item.media_id == 'track-2'
    player.OpenUri('https://example.org/stream')
    service._root_interface.Raise()
    service._root_interface.Quit()


def test_property_getters_read_the_table(service, session):
    session.vol = 0.6
    session.commands.discard(Command.PLAY_PAUSE)
    assert service._player_interface.Volume == 0.6
    assert service._player_interface.CanPlay is False
    assert service._player_interface.MaximumRate == 2.0
    assert service._root_interface.Identity == 'Android'
    assert service._root_interface.SupportedMimeTypes == []
