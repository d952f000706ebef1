"""
Banner error taxonomy

Each error carries the HTTP status the API layer answers with,
so views can turn any BannerError into {success: false, error: ...}.
"""

from rest_framework import status


class BannerError(Exception):
    """Base class for every banner registry / collaborator failure"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Banner operation failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(BannerError):
    """Malformed request: missing field, wrong type, unknown day token"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid banner request'


class NotFound(BannerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Banner not found'


class DuplicateBanner(BannerError):
    """An upload returned a URL that is already registered"""

    status_code = status.HTTP_409_CONFLICT
    default_message = 'Banner already registered'


class ConcurrentUpdate(BannerError):
    """The stored document changed between read and write"""

    status_code = status.HTTP_409_CONFLICT
    default_message = 'Banner configuration was modified concurrently, reload and retry'


class ConfigUnavailable(BannerError):
    """Config store unreachable, timed out or misconfigured"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = 'Banner configuration store unavailable'


class AssetHostFailure(BannerError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = 'Banner image host request failed'


class AssetNotFound(AssetHostFailure):
    """The asset host has no asset under the given reference"""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Banner image not found on asset host'
