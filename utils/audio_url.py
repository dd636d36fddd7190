"""
Recording URL normalization.

The telephony provider serves each recording in several encodings, chosen
by the file extension. A bare URL or a .wav URL is rewritten to .mp3,
which the platform can fetch and play back faster.
"""
from __future__ import annotations

import posixpath
from urllib.parse import urlsplit, urlunsplit

LOSSLESS_EXTENSION = ".wav"
COMPRESSED_EXTENSION = ".mp3"


def normalize_audio_url(audio_url: str) -> str:
    """Prefer the compressed encoding; any other explicit extension is kept."""
    if not audio_url:
        return audio_url
    parts = urlsplit(audio_url)
    base, ext = posixpath.splitext(parts.path)
    if ext not in ("", LOSSLESS_EXTENSION):
        return audio_url
    return urlunsplit(parts._replace(path=base + COMPRESSED_EXTENSION))
