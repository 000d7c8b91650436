from __future__ import annotations

from config.api.exceptions import ServiceError


class AdvisoryConfigurationError(ServiceError):
    default_detail = "Server configuration error: Missing OpenAI API key."
    default_code = "configuration_error"


class RecommendationError(ServiceError):
    default_detail = "Failed to get recommendation."
    default_code = "recommendation_failed"
