from __future__ import annotations
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from .camelot import bpm_band_floor, camelot_code, is_valid_key, is_valid_mode
from .models import OrganizedGroup, Track


def is_organizable(track: Track) -> bool:
    """True when the track carries usable tempo, key and mode values."""
    tempo = track.tempo
    if tempo is None or track.key is None or track.mode is None:
        return False
    if isinstance(tempo, bool) or not isinstance(tempo, (int, float)) or not math.isfinite(tempo):
        return False
    return is_valid_key(track.key) and is_valid_mode(track.mode)


def organize_playlist(tracks: Iterable[Track]) -> List[OrganizedGroup]:
    """Group tracks by BPM band, then by Camelot code.

    Groups come back ordered by band floor and then by code as a plain
    string ("10A" sorts before "2A"). Tracks inside a group are ordered by
    tempo; equal tempos keep their input order.
    """
    valid = [t for t in tracks if is_organizable(t)]
    if not valid:
        return []

    buckets: Dict[Tuple[int, str], List[Track]] = defaultdict(list)
    for t in valid:
        buckets[(bpm_band_floor(t.tempo), camelot_code(t.key, t.mode))].append(t)

    groups = [
        OrganizedGroup(bpm=bpm, camelot=code, tracks=sorted(members, key=lambda t: t.tempo))
        for (bpm, code), members in buckets.items()
    ]
    groups.sort(key=lambda g: (g.bpm, g.camelot))
    return groups


def flatten_uris(groups: Sequence[OrganizedGroup]) -> List[str]:
    return [t.uri for g in groups for t in g.tracks if t.uri]


def summarize(groups: Sequence[OrganizedGroup], total: int) -> Dict[str, int]:
    organized = sum(len(g.tracks) for g in groups)
    return {
        "total_tracks": total,
        "organized_tracks": organized,
        "excluded_tracks": total - organized,
        "group_count": len(groups),
    }
