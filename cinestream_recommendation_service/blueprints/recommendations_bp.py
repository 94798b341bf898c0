"""HTTP endpoints for recommendations, trending movies and interactions."""
import json
import logging

import azure.functions as func

from cinestream_recommendation_service.config import (
    get_cache_capacity,
    get_cache_hit_threshold,
    get_cache_ttl_seconds,
)
from cinestream_recommendation_service.errors import RecommendationError, ValidationError
from cinestream_recommendation_service.services import (
    InteractionService,
    PopularityService,
    RecommendationService,
)
from cinestream_recommendation_service.storage import RecommendationCache

# Initialize blueprint
bp = func.Blueprint()

# Initialize services (singleton pattern, one cache per process)
recommendation_cache = RecommendationCache(
    capacity=get_cache_capacity(),
    default_ttl=get_cache_ttl_seconds(),
    hit_threshold=get_cache_hit_threshold(),
)
recommendation_service = RecommendationService(cache=recommendation_cache)
interaction_service = InteractionService(cache=recommendation_cache)
popularity_service = PopularityService()

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
MAX_RESULTS = 50


def _json_response(body, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body, default=str),  # default=str handles dates
        status_code=status_code,
        mimetype="application/json"
    )


def _error_response(error: RecommendationError) -> func.HttpResponse:
    return _json_response({"error": str(error), "code": error.code}, error.status)


def _parse_n(req: func.HttpRequest, default: int) -> int:
    """Read the `n` query parameter, 1 to 50."""
    raw = req.params.get('n')
    if raw is None:
        return default
    try:
        n = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("n must be an integer")
    if n < 1 or n > MAX_RESULTS:
        raise ValidationError(f"n must be between 1 and {MAX_RESULTS}")
    return n


def _user_id(req: func.HttpRequest) -> str | None:
    headers = req.headers or {}
    return headers.get(USER_ID_HEADER) or headers.get(USER_ID_HEADER.lower())


@bp.route(route="recommendations/me", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_my_recommendations(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get personalized recommendations for the calling user.

    Headers:
        - X-User-Id: Authenticated user (set by the gateway)

    Query Parameters:
        - n: Number of recommendations (default: 20, max: 50)
    """
    try:
        user_id = _user_id(req)
        if not user_id:
            raise ValidationError("X-User-Id header is required")
        n = _parse_n(req, 20)

        recommendations = recommendation_service.recommend_for_user(user_id, n=n)

        return _json_response({
            "user_id": user_id,
            "count": len(recommendations),
            "recommendations": recommendations
        })

    except RecommendationError as e:
        logger.warning(f"Recommendation request failed: {e}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error getting user recommendations: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, 500)


@bp.route(route="movies/{movie_id}/recommendations", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_movie_recommendations(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get movies similar to a specific movie.

    Query Parameters:
        - n: Number of recommendations (default: 10, max: 50)
    """
    try:
        movie_id = req.route_params.get('movie_id')
        if not movie_id:
            raise ValidationError("movie_id is required")
        n = _parse_n(req, 10)

        recommendations = recommendation_service.recommend_similar(movie_id, n=n)

        return _json_response({
            "movie_id": movie_id,
            "count": len(recommendations),
            "recommendations": recommendations
        })

    except RecommendationError as e:
        logger.warning(f"Similar movies request failed: {e}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error getting similar movies: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, 500)


@bp.route(route="movies/trending", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_trending_movies(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get the most popular movies.

    Query Parameters:
        - n: Number of movies (default: 20, max: 50)
    """
    try:
        n = _parse_n(req, 20)
        movies = recommendation_service.get_trending(n=n)

        return _json_response({"count": len(movies), "movies": movies})

    except RecommendationError as e:
        logger.warning(f"Trending request failed: {e}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error getting trending movies: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, 500)


@bp.route(route="movies/{movie_id}/interactions", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def record_interaction(req: func.HttpRequest) -> func.HttpResponse:
    """
    Record a view, like, share or complete event for the calling user.

    Body:
        {"action": "view" | "like" | "share" | "complete"}
    """
    try:
        user_id = _user_id(req)
        if not user_id:
            raise ValidationError("X-User-Id header is required")
        movie_id = req.route_params.get('movie_id')

        try:
            body = req.get_json()
        except ValueError:
            raise ValidationError("Request body must be JSON")
        action = (body or {}).get('action')

        interaction = interaction_service.record(user_id, movie_id, action)

        return _json_response(interaction, 201)

    except RecommendationError as e:
        logger.warning(f"Interaction request failed: {e}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error recording interaction: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, 500)


# noinspection PyUnusedLocal
@bp.route(route="movies/scores/refresh", methods=["POST"])
def refresh_popularity_scores(req: func.HttpRequest) -> func.HttpResponse:
    """Recompute popularity scores for every movie."""
    try:
        updated = popularity_service.refresh_scores()
        return _json_response({"updated": updated})

    except Exception as e:
        logger.error(f"Error refreshing popularity scores: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, 500)


@bp.route(route="recommendations/cache", methods=["DELETE"])
def invalidate_cache(req: func.HttpRequest) -> func.HttpResponse:
    """
    Invalidate cached recommendations.

    Query Parameters:
        - pattern: Substring of the keys to drop (default: everything)
    """
    try:
        pattern = req.params.get('pattern')
        removed = recommendation_service.invalidate_cache(pattern)
        return _json_response({"removed": removed, "pattern": pattern})

    except Exception as e:
        logger.error(f"Error invalidating cache: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, 500)


# noinspection PyUnusedLocal
@bp.route(route="recommendations/cache/stats", methods=["GET"])
def get_cache_stats(req: func.HttpRequest) -> func.HttpResponse:
    """Get statistics about the recommendation cache."""
    try:
        return _json_response(recommendation_service.get_cache_stats())

    except Exception as e:
        logger.error(f"Error getting cache stats: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, 500)


# noinspection PyUnusedLocal
@bp.route(route="recommendations/health", methods=["GET"])
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint."""
    return _json_response({
        "status": "healthy",
        "service": "cinestream-recommendation-service",
        "version": "1.0.0"
    })
