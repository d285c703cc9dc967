import re
import struct
import time

import mmh3

NO_TRACK_PATH = '/org/mpris/MediaPlayer2/TrackList/NoTrack'

BUS_SUFFIX_SEED = 42
TRACK_HASH_SEED = 0

_INVALID_PATH_CHARS = re.compile(r'[^A-Za-z0-9_]')


def new_bus_suffix(now_millis: int | None = None) -> str:
    if now_millis is None:
        now_millis = int(time.time() * 1000)
    hashed = mmh3.hash(struct.pack('<q', now_millis), BUS_SUFFIX_SEED, signed=False)
    return hashed.to_bytes(4, 'little').hex()


def _hash64(value: str) -> bytes:
    # first half of the x64 128-bit digest, little-endian
    return mmh3.hash_bytes(value, TRACK_HASH_SEED, x64arch=True)[:8]


def combine_ordered(*hashes: bytes) -> bytes:
    """Order-sensitive combination of equal-length hashes."""
    result = bytearray(len(hashes[0]))
    for next_bytes in hashes:
        if len(next_bytes) != len(result):
            raise ValueError('All hashcodes must have the same bit length.')
        for i, b in enumerate(next_bytes):
            result[i] = ((result[i] * 37) ^ b) & 0xFF
    return bytes(result)


def track_id(title: str, media_id: str) -> int:
    return int.from_bytes(combine_ordered(_hash64(title), _hash64(media_id)), 'little')


def _namespace_to_path(namespace: str) -> str:
    elements = [_INVALID_PATH_CHARS.sub('_', part) for part in namespace.split('.') if part]
    return ''.join('/' + element for element in elements)


def track_object_path(namespace: str, title: str, media_id: str) -> str:
    return f'{_namespace_to_path(namespace)}/{track_id(title, media_id)}'
