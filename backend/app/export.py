from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence

from loguru import logger

from .models import OrganizedGroup
from .organizer import flatten_uris
from .spotify import MAX_TRACKS_PER_REQUEST, SpotifyClient

DEFAULT_DESCRIPTION = "Playlist reorganized by BPM (primary) and Camelot number (secondary) for DJ mixing"


class ExportError(Exception):
    pass


@dataclass
class ExportResult:
    playlist_id: str
    name: str
    track_count: int
    batch_count: int


def default_playlist_name(source_name: str) -> str:
    source_name = (source_name or "").strip()
    return f"{source_name} - Organized" if source_name else "Organized Playlist"


def export_organized_playlist(
    client: SpotifyClient,
    user_id: str,
    groups: Sequence[OrganizedGroup],
    name: str,
    description: str = DEFAULT_DESCRIPTION,
    batch_size: int = MAX_TRACKS_PER_REQUEST,
) -> ExportResult:
    """Write organized groups to a new private playlist.

    Steps: create, verify, append tracks in batches, verify again.
    Provider errors propagate as SpotifyAPIError.
    """
    uris: List[str] = flatten_uris(groups)
    if not uris:
        raise ExportError("Nothing to export: no organized tracks")

    playlist = client.create_playlist(user_id, name, description)

    if not client.verify_playlist_exists(playlist.id):
        raise ExportError("Playlist was created but cannot be verified")

    batches = client.add_tracks_to_playlist(playlist.id, uris, batch_size=batch_size)

    if not client.verify_playlist_exists(playlist.id):
        raise ExportError("Tracks were added but final verification failed")

    logger.info("Exported {} tracks to playlist {} in {} batches", len(uris), playlist.id, batches)
    return ExportResult(playlist_id=playlist.id, name=playlist.name or name, track_count=len(uris), batch_count=batches)
