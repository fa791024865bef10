"""Camelot wheel and BPM band lookups.

All tables here are read-only and built once at import.
"""
from __future__ import annotations
import math
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .models import BpmBand

KEY_NAMES: Tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

MAJOR = 1
MINOR = 0

UNKNOWN_CAMELOT = "Unknown"

# Enharmonic pairs share a code.
CAMELOT_WHEEL: Mapping[str, str] = MappingProxyType(
    {
        "C": "8B", "G": "8B",
        "D": "10B", "A": "10B",
        "E": "12B", "B": "12B",
        "F#": "2B", "C#": "2B",
        "G#": "4B", "D#": "4B",
        "A#": "6B", "F": "6B",
        "Am": "8A", "Em": "8A",
        "Bm": "10A", "F#m": "10A",
        "C#m": "12A", "G#m": "12A",
        "D#m": "2A", "A#m": "2A",
        "Fm": "4A", "Cm": "4A",
        "Gm": "6A", "Dm": "6A",
    }
)

VALID_CODES = frozenset(f"{n}{side}" for n in range(1, 13) for side in "AB")

BPM_BANDS: Tuple[BpmBand, ...] = (
    BpmBand(60, 80, "Downtempo"),
    BpmBand(80, 100, "Hip-Hop"),
    BpmBand(100, 120, "House"),
    BpmBand(120, 140, "Techno"),
    BpmBand(140, 160, "Drum & Bass"),
    BpmBand(160, 180, "Hardcore"),
    BpmBand(180, None, "Extreme"),
)

_BANDS_BY_FLOOR: Mapping[int, BpmBand] = MappingProxyType({b.floor: b for b in BPM_BANDS})


def is_valid_key(key) -> bool:
    return isinstance(key, int) and not isinstance(key, bool) and 0 <= key < len(KEY_NAMES)


def is_valid_mode(mode) -> bool:
    return isinstance(mode, int) and not isinstance(mode, bool) and mode in (MINOR, MAJOR)


def key_name(key: int, mode: int) -> Optional[str]:
    """Return the chromatic key name, suffixed with "m" for minor (e.g. 9, 0 -> "Am")."""
    if not is_valid_key(key) or not is_valid_mode(mode):
        return None
    name = KEY_NAMES[key]
    return name if mode == MAJOR else f"{name}m"


def camelot_code(key: int, mode: int) -> str:
    """Map a (key, mode) pair onto the Camelot wheel.

    Any pair without an entry yields UNKNOWN_CAMELOT rather than an error.
    """
    name = key_name(key, mode)
    if name is None:
        return UNKNOWN_CAMELOT
    return CAMELOT_WHEEL.get(name, UNKNOWN_CAMELOT)


def is_valid_code(code: str) -> bool:
    return code in VALID_CODES


def round_bpm(tempo: float) -> int:
    # halves round up
    return int(math.floor(tempo + 0.5))


def bpm_band(tempo: float) -> BpmBand:
    """Return the band whose half-open range holds the rounded tempo.

    There is no band below 60; slower tempos fall into the first one.
    """
    bpm = round_bpm(tempo)
    for band in BPM_BANDS:
        if band.ceiling is None or bpm < band.ceiling:
            return band
    return BPM_BANDS[-1]


def bpm_band_floor(tempo: float) -> int:
    return bpm_band(tempo).floor


def bpm_range_label(tempo: float) -> str:
    return bpm_band(tempo).label


def band_for_floor(floor: int) -> Optional[BpmBand]:
    return _BANDS_BY_FLOOR.get(floor)
