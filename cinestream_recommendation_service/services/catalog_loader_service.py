"""Service to load movie metadata from the upstream movie service"""
import logging
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from cinestream_recommendation_service.config import get_service_url

logger = logging.getLogger(__name__)


def _names(value: Any) -> list[str]:
    """Flatten a list of names or populated {'name': ...} documents."""
    if not value:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    names = []
    for entry in value:
        if isinstance(entry, dict):
            entry = entry.get("name")
        if entry:
            names.append(str(entry))
    return names


def normalize_movie(raw: dict) -> dict:
    """
    Map an upstream movie document onto the local catalog fields.

    Accepts both snake_case and camelCase keys; play and like counters may
    live at the top level or under 'stats'.
    """
    stats = raw.get("stats") or {}
    return {
        "id": str(raw.get("id") or raw.get("_id")),
        "title": raw.get("title"),
        "description": raw.get("description"),
        "thumbnail": raw.get("thumbnail"),
        "duration": raw.get("duration"),
        "categories": _names(raw.get("categories")),
        "length_category": raw.get("length_category") or raw.get("lengthCategory"),
        "directors": _names(raw.get("directors")),
        "actors": _names(raw.get("actors")),
        "keywords": _names(raw.get("keywords") or raw.get("tags")),
        "score": raw.get("score") or 0.0,
        "plays": raw.get("plays") or stats.get("plays") or 0,
        "likes": raw.get("likes") or stats.get("likes") or 0,
        "release_date": raw.get("release_date") or raw.get("releaseDate") or raw.get("uploadDate"),
        "created_at": raw.get("created_at") or raw.get("createdAt"),
    }


class MovieCatalogLoader:
    """Service to load movie metadata from the movie microservice."""

    def __init__(self, movie_service_url: str | None = None):
        # Default to localhost for development
        self.movie_service_url = movie_service_url or get_service_url('movie', 7071)

        # Configure session with retries
        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        # noinspection HttpUrlsUsage
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def get_all_movies_bulk(self, offset: int = 0, limit: int = 100) -> dict:
        """
        Fetch movies using the bulk endpoint with pagination.

        Returns:
            {
                "movies": [...],
                "total": 12345,
                "offset": 0,
                "limit": 100
            }
        """
        url = f"{self.movie_service_url}/get_movies_bulk"
        params = {'offset': offset, 'limit': limit}
        response = self.session.get(url, params=params, timeout=10)
        response.raise_for_status()
        return response.json()

    def get_all_movies(self, batch_size: int = 100, max_movies: int | None = None) -> list[dict]:
        """
        Fetch and normalize all movies using pagination.

        Args:
            batch_size: Number of movies per request
            max_movies: Optional limit on total movies to fetch (for testing)

        Returns:
            List of normalized movie dicts
        """
        all_movies: list[dict] = []
        offset = 0

        logger.info(f"Fetching all movies (batch size: {batch_size})...")

        while True:
            if max_movies and len(all_movies) >= max_movies:
                logger.info(f"Reached max_movies limit: {max_movies}")
                all_movies = all_movies[:max_movies]
                break

            result = self.get_all_movies_bulk(offset=offset, limit=batch_size)
            movies = result.get('movies', [])

            if not movies:
                break

            all_movies.extend(normalize_movie(m) for m in movies)
            logger.info(f"  Loaded {len(all_movies)} movies...")

            # Fewer movies than requested means we're at the end
            if len(movies) < batch_size:
                break

            offset += batch_size
            time.sleep(0.1)  # Rate limiting

        if max_movies:
            all_movies = all_movies[:max_movies]

        logger.info(f"✓ Loaded {len(all_movies)} total movies")
        return all_movies
