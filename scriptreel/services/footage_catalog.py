"""Footage Catalog - stock clip search and download backed by the Pexels API."""

from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import requests

from scriptreel.core.config import Settings
from scriptreel.core.errors import FootageLookupError
from scriptreel.models.schemas import FootageClip
from scriptreel.services.interfaces import FootageCatalog
from scriptreel.utils.rate_limiter import get_pexels_limiter

STANDARD_FPS = (24, 25, 30, 50, 60)
HD_QUALITY_MARKERS = ("1080", "720", "hd")


def _is_hd_label(quality: Optional[str]) -> bool:
    return bool(quality) and any(marker in quality for marker in HD_QUALITY_MARKERS)


def has_usable_file(video: dict[str, Any]) -> bool:
    """True if any file is labelled HD or is at least 640x360."""
    for file in video.get("video_files") or []:
        if _is_hd_label(file.get("quality")):
            return True
        if (file.get("width") or 0) >= 640 and (file.get("height") or 0) >= 360:
            return True
    return False


def video_quality_score(video: dict[str, Any]) -> int:
    """
    Score a Pexels video on duration, resolution, format and frame rate.

    Args:
        video: Video object from the Pexels search response

    Returns:
        Integer score (higher is better)
    """
    files = video.get("video_files") or []
    duration = video.get("duration") or 0
    score = 0

    if 5 <= duration <= 40:
        score += 10
    elif 3 <= duration <= 50:
        score += 8
    elif 2 <= duration <= 60:
        score += 5
    elif duration >= 1:
        score += 2

    max_resolution = max(((f.get("width") or 0) * (f.get("height") or 0) for f in files), default=0)
    if max_resolution >= 1920 * 1080:
        score += 8
    elif max_resolution >= 1280 * 720:
        score += 7
    elif max_resolution >= 854 * 480:
        score += 5
    elif max_resolution >= 640 * 360:
        score += 3
    elif max_resolution >= 480 * 270:
        score += 1

    if has_usable_file(video):
        score += 4
    if any(f.get("file_type") == "video/mp4" for f in files):
        score += 3
    if any(f.get("fps") in STANDARD_FPS for f in files):
        score += 2

    return score


def _file_rank(file: dict[str, Any]) -> tuple[int, int, int]:
    quality = file.get("quality") or ""
    if "1080" in quality:
        label = 4
    elif "720" in quality:
        label = 3
    elif "480" in quality:
        label = 2
    elif quality:
        label = 1
    else:
        label = 0
    fps = file.get("fps") or 0
    return (label, int(24 <= fps <= 60), int(fps in STANDARD_FPS))


def select_best_file(video: dict[str, Any]) -> Optional[dict[str, Any]]:
    """
    Pick the mp4 rendition to download.

    Prefers 1080p over 720p over 480p, then frame rates between 24 and 60,
    then standard frame rates. Ties keep the catalog's order.
    """
    mp4_files = [f for f in video.get("video_files") or [] if f.get("file_type") == "video/mp4" and f.get("link")]
    if not mp4_files:
        return None
    return sorted(mp4_files, key=_file_rank, reverse=True)[0]


class PexelsFootageCatalog(FootageCatalog):
    """Footage catalog that searches Pexels videos by keyword."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the Pexels catalog.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.api_url = settings.pexels_api_url.rstrip("/")

    def search(self, query_terms: list[str], min_duration_hint: float = 0.0) -> list[FootageClip]:
        """
        Search each term and collect usable clips.

        Stops querying further terms once the collected duration reaches
        min_duration_hint (0 searches every term).

        Args:
            query_terms: Keywords to search, most specific first
            min_duration_hint: Seconds of footage after which searching stops

        Returns:
            Clips in discovery order, unique by id

        Raises:
            FootageLookupError: If the API key is missing or a request fails
        """
        if not self.settings.pexels_api_key:
            raise FootageLookupError(
                "Pexels API key not configured. Please set PEXELS_API_KEY environment variable."
            )

        clips: list[FootageClip] = []
        seen: set[str] = set()
        collected = 0.0

        for term in query_terms:
            if min_duration_hint > 0 and collected >= min_duration_hint:
                break

            videos = self._search_videos(term)
            suitable = [
                v
                for v in videos
                if self.settings.min_clip_seconds <= (v.get("duration") or 0) <= self.settings.max_clip_seconds
                and has_usable_file(v)
            ]
            suitable.sort(key=video_quality_score, reverse=True)

            for video in suitable[: self.settings.max_clips_per_keyword]:
                clip = self._to_clip(video)
                if clip is None or clip.id in seen:
                    continue
                seen.add(clip.id)
                clips.append(clip)
                collected += clip.duration_seconds
                self.logger.debug(
                    f"Selected '{term}': clip {clip.id} {clip.duration_seconds:.0f}s ({clip.quality}, {clip.fps}fps)"
                )

        self.logger.info(f"Pexels search over {len(query_terms)} terms found {len(clips)} clips ({collected:.1f}s)")
        return clips

    def _search_videos(self, query: str) -> list[dict[str, Any]]:
        """Run one Pexels video search request."""
        limiter = get_pexels_limiter(max_calls=self.settings.pexels_rate_limit)
        limiter.wait_if_needed("videos/search")

        try:
            response = requests.get(
                f"{self.api_url}/videos/search",
                params={
                    "query": query,
                    "orientation": self.settings.footage_orientation,
                    "size": self.settings.footage_size,
                    "per_page": self.settings.footage_per_page,
                    "page": 1,
                    "locale": "en-US",
                },
                headers={"Authorization": self.settings.pexels_api_key},
                timeout=self.settings.catalog_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.Timeout as e:
            raise FootageLookupError(
                f"Pexels search for '{query}' timed out after {self.settings.catalog_timeout_seconds}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise FootageLookupError(f"Failed to search videos for '{query}': {e}") from e
        except ValueError as e:
            raise FootageLookupError(f"Pexels returned invalid JSON for '{query}'") from e

        return payload.get("videos") or []

    def _to_clip(self, video: dict[str, Any]) -> Optional[FootageClip]:
        best_file = select_best_file(video)
        if best_file is None:
            return None
        return FootageClip(
            id=str(video["id"]),
            duration_seconds=float(video.get("duration") or 0),
            source_uri=best_file["link"],
            tags=list(video.get("tags") or []),
            width=best_file.get("width"),
            height=best_file.get("height"),
            fps=best_file.get("fps"),
            quality=best_file.get("quality") or "unknown",
        )

    def fetch(self, clip: FootageClip, destination: Path) -> Path:
        """
        Download a clip into destination.

        Local paths and file:// URIs are returned as-is.

        Args:
            clip: Clip to fetch
            destination: Directory to download into

        Returns:
            Path of the local video file

        Raises:
            FootageLookupError: If the file is missing or the download fails
        """
        local = local_path_for(clip.source_uri)
        if local is not None:
            if not local.exists():
                raise FootageLookupError(f"Clip {clip.id} not found at {local}")
            return local

        destination.mkdir(parents=True, exist_ok=True)
        target = destination / f"clip_{clip.id}.mp4"
        self.logger.debug(f"Downloading clip {clip.id} to {target}")

        try:
            with requests.get(clip.source_uri, stream=True, timeout=self.settings.download_timeout_seconds) as response:
                response.raise_for_status()
                with open(target, "wb") as f:
                    for chunk in response.iter_content(chunk_size=1 << 16):
                        if chunk:
                            f.write(chunk)
        except requests.exceptions.RequestException as e:
            raise FootageLookupError(f"Failed to download clip {clip.id}: {e}") from e

        return target


def local_path_for(source_uri: str) -> Optional[Path]:
    """Return a Path for local sources (plain paths or file:// URIs), else None."""
    parsed = urlparse(source_uri)
    if parsed.scheme in ("http", "https"):
        return None
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(source_uri)
