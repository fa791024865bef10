"""
Spotify Web API client.

Thin wrapper over a requests.Session: each call maps to one endpoint and
returns model objects. Non-2xx responses raise SpotifyAPIError.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

import requests
from loguru import logger
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .models import SpotifyPlaylist, SpotifyUser, Track, playlist_from_api, track_from_api, user_from_api

API_BASE = "https://api.spotify.com/v1"

# Provider limits
MAX_TRACKS_PER_REQUEST = 100
MAX_AUDIO_FEATURE_IDS = 100
MAX_PLAYLISTS_PAGE = 50

RETRY_STATUSES = (429, 500, 502, 503, 504)


class SpotifyAPIError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class SpotifyAuthError(SpotifyAPIError):
    pass


def build_session(max_retries: int = 3) -> requests.Session:
    """Session that retries reads on rate limiting and server errors."""
    retry = Retry(
        total=max_retries,
        backoff_factor=0.5,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _json_body(resp: requests.Response) -> Dict[str, Any]:
    try:
        return resp.json()
    except ValueError as exc:
        logger.error("Spotify returned a non-JSON body ({}): {}", resp.status_code, resp.text[:200])
        raise SpotifyAPIError(502, "Spotify returned an unreadable response") from exc


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


class SpotifyClient:
    def __init__(
        self,
        access_token: str,
        session: Optional[requests.Session] = None,
        api_base: str = API_BASE,
        timeout: float = 30.0,
        max_retries: int = 3,
    ):
        self.access_token = access_token
        self.session = session if session is not None else build_session(max_retries)
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.api_base}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if "json" in kwargs:
            headers["Content-Type"] = "application/json"
        logger.debug("{} {}", method, url)
        try:
            resp = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("Request to Spotify failed: {} {}: {}", method, url, exc)
            raise SpotifyAPIError(503, f"Could not reach Spotify: {exc}") from exc
        if not resp.ok:
            logger.error("Spotify responded {} for {} {}: {}", resp.status_code, method, url, resp.text)
            raise SpotifyAPIError(resp.status_code, f"{resp.status_code} - {resp.text}")
        return resp

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return _json_body(self._request("GET", path, params=params))

    def get_current_user(self) -> SpotifyUser:
        return user_from_api(self._get_json("/me"))

    def get_user_playlists(self, limit: int = MAX_PLAYLISTS_PAGE) -> List[SpotifyPlaylist]:
        data = self._get_json("/me/playlists", params={"limit": min(limit, MAX_PLAYLISTS_PAGE)})
        return [playlist_from_api(p) for p in data.get("items") or [] if p]

    def get_playlist(self, playlist_id: str) -> Dict[str, Any]:
        return self._get_json(f"/playlists/{playlist_id}")

    def get_playlist_tracks(self, playlist_id: str) -> List[Track]:
        """All music tracks of a playlist, following pagination.

        Removed tracks (null) and non-track items such as podcast episodes
        are skipped.
        """
        tracks: List[Track] = []
        next_url: Optional[str] = f"/playlists/{playlist_id}/tracks"
        params: Optional[Dict[str, Any]] = {"limit": MAX_TRACKS_PER_REQUEST}
        while next_url:
            data = self._get_json(next_url, params=params)
            for item in data.get("items") or []:
                track = (item or {}).get("track")
                if not track or track.get("type", "track") != "track":
                    continue
                tracks.append(track_from_api(track))
            next_url = data.get("next")
            params = None
        logger.info("Loaded {} tracks from playlist {}", len(tracks), playlist_id)
        return tracks

    def get_audio_features(self, track_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        features: Dict[str, Dict[str, Any]] = {}
        ids = [tid for tid in track_ids if tid]
        for batch in _chunks(ids, MAX_AUDIO_FEATURE_IDS):
            data = self._get_json("/audio-features", params={"ids": ",".join(batch)})
            for entry in data.get("audio_features") or []:
                if entry and entry.get("id"):
                    features[entry["id"]] = entry
        return features

    def attach_audio_features(self, tracks: List[Track]) -> List[Track]:
        """Copy tempo/key/mode from the provider's audio features onto tracks.

        Tracks the provider has no features for are returned unchanged.
        """
        features = self.get_audio_features([t.id for t in tracks])
        result: List[Track] = []
        for t in tracks:
            f = features.get(t.id)
            if f is None:
                result.append(t)
                continue
            result.append(t.with_analysis(f.get("tempo"), f.get("key"), f.get("mode")))
        return result

    def create_playlist(self, user_id: str, name: str, description: str, public: bool = False) -> SpotifyPlaylist:
        logger.info("Creating playlist for user {}: {!r}", user_id, name)
        resp = self._request(
            "POST",
            f"/users/{user_id}/playlists",
            json={"name": name, "description": description, "public": public},
        )
        playlist = playlist_from_api(_json_body(resp))
        logger.info("Playlist created: {} ({})", playlist.name, playlist.id)
        return playlist

    def add_tracks_to_playlist(
        self, playlist_id: str, uris: List[str], batch_size: int = MAX_TRACKS_PER_REQUEST
    ) -> int:
        """Append `uris` in order, one request per batch. Returns the batch count."""
        batch_size = max(1, min(batch_size, MAX_TRACKS_PER_REQUEST))
        logger.info("Adding {} tracks to playlist {}", len(uris), playlist_id)
        batches = 0
        for number, batch in enumerate(_chunks(list(uris), batch_size), start=1):
            try:
                self._request("POST", f"/playlists/{playlist_id}/tracks", json={"uris": batch})
            except SpotifyAPIError as exc:
                raise SpotifyAPIError(
                    exc.status_code, f"Failed to add tracks batch {number}: {exc.message}"
                ) from exc
            logger.debug("Added batch {}: {} tracks", number, len(batch))
            batches = number
        return batches

    def verify_playlist_exists(self, playlist_id: str) -> bool:
        try:
            data = self.get_playlist(playlist_id)
        except SpotifyAPIError as exc:
            logger.warning("Playlist verification failed for {}: {}", playlist_id, exc.message)
            return False
        logger.info("Playlist verified: {} ({})", data.get("name"), data.get("id"))
        return True
