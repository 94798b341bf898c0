"""Domain errors raised by the recommendation service."""


class RecommendationError(Exception):
    code: str = "recommendation_error"
    status: int = 500

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code
        if status:
            self.status = status


class ValidationError(RecommendationError):
    """A required identifier or parameter is missing or malformed."""
    code = "validation_error"
    status = 400


class NotFoundError(RecommendationError):
    """The referenced movie does not exist."""
    code = "not_found"
    status = 404


class UpstreamFailure(RecommendationError):
    """The movie store or interaction log failed."""
    code = "upstream_failure"
    status = 502


class ExhaustedFallback(RecommendationError):
    """Both the main pipeline and the trending fallback failed."""
    code = "unable_to_generate_recommendations"
    status = 503
