from __future__ import annotations
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from pydantic import BaseModel, Field, StrictInt

from .auth import build_authorize_url, exchange_code, redirect_uri_for, resolve_base_url
from .camelot import BPM_BANDS, band_for_floor
from .config import Settings, get_settings
from .export import DEFAULT_DESCRIPTION, ExportError, default_playlist_name, export_organized_playlist
from .logs import configure_logging, token_preview
from .models import OrganizedGroup, SpotifyPlaylist, SpotifyUser, Track, track_from_api
from .organizer import organize_playlist, summarize
from .spotify import SpotifyAPIError, SpotifyAuthError, SpotifyClient

configure_logging(get_settings().log_level)

app = FastAPI(title="MixWheel v0.1")


# Static mounting (only if frontend exists)
BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR.parent.parent / "frontend"
if STATIC_DIR.is_dir():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")


@app.exception_handler(SpotifyAPIError)
def spotify_error_handler(request: Request, exc: SpotifyAPIError):
    status = 401 if exc.status_code == 401 else 502
    return JSONResponse(status_code=status, content={"detail": exc.message})


@app.exception_handler(ExportError)
def export_error_handler(request: Request, exc: ExportError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        return ""
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def get_spotify_client(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> SpotifyClient:
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authorization header is required")
    logger.debug("Using access token {}", token_preview(token))
    return SpotifyClient(
        token,
        api_base=settings.spotify_api_base,
        timeout=settings.http_timeout,
        max_retries=settings.http_max_retries,
    )


def _base_url(request: Request, settings: Settings) -> str:
    return resolve_base_url(
        request.headers.get("host", ""),
        referer=request.headers.get("referer", ""),
        origin=request.headers.get("origin", ""),
        fallback=settings.spotify_redirect_uri,
        public_hosts=settings.public_host_list,
    )


def _group_to_dict(g: OrganizedGroup) -> dict:
    band = band_for_floor(g.bpm)
    return {
        "bpm": g.bpm,
        "camelot": g.camelot,
        "label": band.label if band else "",
        "track_count": len(g.tracks),
        "tracks": [asdict(t) for t in g.tracks],
    }


def _playlist_to_dict(p: SpotifyPlaylist) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "images": [asdict(i) for i in p.images],
        "total_tracks": p.total_tracks,
    }


def _user_to_dict(u: SpotifyUser) -> dict:
    return {
        "id": u.id,
        "display_name": u.display_name,
        "images": [asdict(i) for i in u.images],
    }


@app.get("/")
def root():
    """Redirect root to static frontend."""
    return RedirectResponse(url="/static/", status_code=307)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/auth/spotify")
def auth_spotify(request: Request, settings: Settings = Depends(get_settings)):
    if not settings.spotify_client_id:
        return JSONResponse(status_code=500, content={"error": "Spotify client ID not configured"})
    redirect_uri = redirect_uri_for(_base_url(request, settings))
    logger.debug("Authorizing with redirect URI {}", redirect_uri)
    url = build_authorize_url(
        settings.spotify_client_id,
        redirect_uri,
        accounts_base=settings.spotify_accounts_base,
    )
    return RedirectResponse(url=url, status_code=307)


@app.get("/api/auth/callback")
def auth_callback(
    request: Request,
    code: Optional[str] = None,
    error: Optional[str] = None,
    settings: Settings = Depends(get_settings),
):
    base_url = _base_url(request, settings)

    def back_to_frontend(**params) -> RedirectResponse:
        return RedirectResponse(url=f"{base_url}{settings.frontend_path}?{urlencode(params)}", status_code=307)

    if error:
        logger.warning("Spotify authorization returned error: {}", error)
        return back_to_frontend(error=error)
    if not code:
        return back_to_frontend(error="no_code")
    if not settings.spotify_client_id or not settings.spotify_client_secret:
        return back_to_frontend(error="config_error")

    try:
        token_data = exchange_code(
            code,
            redirect_uri_for(base_url),
            settings.spotify_client_id,
            settings.spotify_client_secret,
            accounts_base=settings.spotify_accounts_base,
            timeout=settings.http_timeout,
        )
    except SpotifyAuthError as exc:
        logger.error("Token exchange error: {}", exc.message)
        return back_to_frontend(error="token_exchange_failed")

    return back_to_frontend(access_token=token_data["access_token"])


@app.get("/api/me")
def get_me(client: SpotifyClient = Depends(get_spotify_client)):
    return _user_to_dict(client.get_current_user())


@app.get("/api/playlists")
def list_playlists(
    limit: int = Query(50, ge=1, le=50),
    client: SpotifyClient = Depends(get_spotify_client),
):
    return [_playlist_to_dict(p) for p in client.get_user_playlists(limit=limit)]


@app.get("/api/playlist-tracks")
def get_playlist_tracks(
    playlist_id: Optional[str] = Query(None, alias="playlistId"),
    with_features: bool = False,
    client: SpotifyClient = Depends(get_spotify_client),
):
    if not playlist_id:
        raise HTTPException(status_code=400, detail="Playlist ID is required")

    tracks = client.get_playlist_tracks(playlist_id)
    if not tracks:
        return {"tracks": [], "totalTracks": 0, "message": "No music tracks found in this playlist"}

    message = f"Loaded {len(tracks)} tracks."
    if with_features:
        try:
            tracks = client.attach_audio_features(tracks)
        except SpotifyAPIError as exc:
            logger.warning("Audio features unavailable for playlist {}: {}", playlist_id, exc.message)
            message += " Audio features are unavailable; supply tempo, key and mode to organize."
        else:
            analyzed = sum(1 for t in tracks if t.tempo is not None)
            message += f" {analyzed} have tempo and key information."

    return {
        "tracks": [asdict(t) for t in tracks],
        "totalTracks": len(tracks),
        "message": message,
    }


@app.get("/api/bpm-bands")
def list_bpm_bands():
    return [
        {"floor": b.floor, "ceiling": b.ceiling, "name": b.name, "label": b.label}
        for b in BPM_BANDS
    ]


class ArtistPayload(BaseModel):
    id: str = ""
    name: str = ""


class AlbumImagePayload(BaseModel):
    url: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


class AlbumPayload(BaseModel):
    id: str = ""
    name: str = ""
    images: List[AlbumImagePayload] = []


class TrackPayload(BaseModel):
    id: str
    uri: str = ""
    name: str = ""
    artists: List[ArtistPayload] = []
    album: AlbumPayload = Field(default_factory=AlbumPayload)
    duration_ms: int = 0
    tempo: Optional[float] = None
    key: Optional[StrictInt] = None
    mode: Optional[StrictInt] = None


def _tracks_from_payload(payload: List[TrackPayload]) -> List[Track]:
    return [track_from_api(t.model_dump()) for t in payload]


class OrganizeRequest(BaseModel):
    tracks: List[TrackPayload]


@app.post("/api/organize")
def organize(body: OrganizeRequest):
    groups = organize_playlist(_tracks_from_payload(body.tracks))
    return {
        "groups": [_group_to_dict(g) for g in groups],
        "summary": summarize(groups, len(body.tracks)),
    }


class ExportRequest(BaseModel):
    tracks: List[TrackPayload]
    user_id: Optional[str] = None
    name: Optional[str] = Field(None, max_length=100)
    source_name: Optional[str] = None
    description: Optional[str] = Field(None, max_length=300)


@app.post("/api/export")
def export_playlist(
    body: ExportRequest,
    client: SpotifyClient = Depends(get_spotify_client),
    settings: Settings = Depends(get_settings),
):
    groups = organize_playlist(_tracks_from_payload(body.tracks))
    if not groups:
        raise HTTPException(status_code=400, detail="No tracks with tempo, key and mode to export")

    user_id = body.user_id or client.get_current_user().id
    name = (body.name or "").strip() or default_playlist_name(body.source_name or "")
    result = export_organized_playlist(
        client,
        user_id,
        groups,
        name,
        description=body.description or DEFAULT_DESCRIPTION,
        batch_size=settings.add_tracks_batch_size,
    )
    summary: Dict[str, int] = summarize(groups, len(body.tracks))
    return {
        "playlist_id": result.playlist_id,
        "name": result.name,
        "track_count": result.track_count,
        "batch_count": result.batch_count,
        "group_count": summary["group_count"],
        "excluded_tracks": summary["excluded_tracks"],
    }
