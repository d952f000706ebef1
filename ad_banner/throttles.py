"""
Throttle classes for the Banner API
"""

from rest_framework.throttling import AnonRateThrottle


class BannerUploadThrottle(AnonRateThrottle):
    """
    Throttle for banner uploads

    Every upload is a paid asset host write plus a full config rewrite.
    Rate: REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['banner_upload'] per IP
    """
    scope = 'banner_upload'
