"""Error taxonomy for the NDVI pipeline.

Every class maps to a distinct `code` so clients can tell failures apart;
`config.api.exceptions.custom_exception_handler` renders them into the
standard error envelope with the optional `details` string.
"""

from __future__ import annotations

from config.api.exceptions import ServiceError


class NdviServiceError(ServiceError):
    default_detail = "NDVI service failure."
    default_code = "ndvi_error"


class ConfigurationError(NdviServiceError):
    default_detail = "Server configuration error."
    default_code = "configuration_error"


class AuthenticationError(NdviServiceError):
    default_detail = "Failed to authenticate with Earth Engine."
    default_code = "authentication_failed"


class NoImageFoundError(NdviServiceError):
    default_detail = (
        "No cloud-free image found for this location in the recent "
        "time window."
    )
    default_code = "no_image_found"


class NoDataAtLocationError(NdviServiceError):
    default_detail = "No NDVI data available at this location."
    default_code = "no_data_at_location"


class EvaluationError(NdviServiceError):
    default_detail = "Failed to get NDVI value."
    default_code = "evaluation_failed"


class TileTemplateError(EvaluationError):
    default_detail = "Failed to generate NDVI map tiles."
    default_code = "tile_template_failed"


class ProxyIOError(NdviServiceError):
    default_detail = "Failed to fetch NDVI tile."
    default_code = "tile_proxy_failed"
