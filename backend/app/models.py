from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass
class AlbumImage:
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class Album:
    id: str = ""
    name: str = ""
    images: List[AlbumImage] = field(default_factory=list)


@dataclass
class Artist:
    id: str = ""
    name: str = ""


@dataclass
class Track:
    id: str
    uri: str = ""
    name: str = ""
    artists: List[Artist] = field(default_factory=list)
    album: Album = field(default_factory=Album)
    duration_ms: int = 0
    tempo: Optional[float] = None
    key: Optional[int] = None
    mode: Optional[int] = None

    @property
    def artist_names(self) -> List[str]:
        return [a.name for a in self.artists]

    def with_analysis(self, tempo: Optional[float], key: Optional[int], mode: Optional[int]) -> "Track":
        return replace(self, tempo=tempo, key=key, mode=mode)


@dataclass(frozen=True)
class BpmBand:
    floor: int
    ceiling: Optional[int]
    name: str

    @property
    def label(self) -> str:
        if self.ceiling is None:
            return f"{self.name} ({self.floor}+ BPM)"
        return f"{self.name} ({self.floor}-{self.ceiling - 1} BPM)"


@dataclass
class OrganizedGroup:
    bpm: int
    camelot: str
    tracks: List[Track] = field(default_factory=list)


@dataclass
class SpotifyPlaylist:
    id: str
    name: str = ""
    description: str = ""
    images: List[AlbumImage] = field(default_factory=list)
    total_tracks: int = 0


@dataclass
class SpotifyUser:
    id: str
    display_name: str = ""
    images: List[AlbumImage] = field(default_factory=list)


def _images_from_api(items: Optional[List[Dict[str, Any]]]) -> List[AlbumImage]:
    return [
        AlbumImage(url=i.get("url", ""), width=i.get("width"), height=i.get("height"))
        for i in (items or [])
        if i
    ]


def track_from_api(data: Dict[str, Any]) -> Track:
    """Build a Track from a provider track object (or an equally shaped dict).

    Analysis fields are copied only when present; missing ones stay None.
    """
    album = data.get("album") or {}
    return Track(
        id=data.get("id") or "",
        uri=data.get("uri") or "",
        name=data.get("name") or "",
        artists=[
            Artist(id=a.get("id") or "", name=a.get("name") or "")
            for a in (data.get("artists") or [])
            if a
        ],
        album=Album(
            id=album.get("id") or "",
            name=album.get("name") or "",
            images=_images_from_api(album.get("images")),
        ),
        duration_ms=data.get("duration_ms") or 0,
        tempo=data.get("tempo"),
        key=data.get("key"),
        mode=data.get("mode"),
    )


def playlist_from_api(data: Dict[str, Any]) -> SpotifyPlaylist:
    tracks = data.get("tracks") or {}
    return SpotifyPlaylist(
        id=data.get("id") or "",
        name=data.get("name") or "",
        description=data.get("description") or "",
        images=_images_from_api(data.get("images")),
        total_tracks=tracks.get("total") or 0,
    )


def user_from_api(data: Dict[str, Any]) -> SpotifyUser:
    return SpotifyUser(
        id=data.get("id") or "",
        display_name=data.get("display_name") or "",
        images=_images_from_api(data.get("images")),
    )
