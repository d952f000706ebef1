"""
Banner API views

Public feed for the web client plus the endpoints used by the admin panel.
Every failure answers {"success": false, "error": "..."} with the status
attached to the BannerError that caused it.
"""

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from django.utils import timezone

from .banner_service import BannerService
from .exceptions import BannerError, ConfigUnavailable
from .serializers import (
    BannerDeleteSerializer,
    BannerUpdateSerializer,
    BannerUploadSerializer,
    first_error,
)
from .throttles import BannerUploadThrottle

logger = logging.getLogger('ad_banner')


def error_response(message, status_code):
    return Response({'success': False, 'error': message}, status=status_code)


def banner_error_response(error: BannerError):
    return error_response(error.message, error.status_code)


class BannerAPIView(APIView):
    """
    Today's banners for the web client carousel.

    GET /api/banners
    Never fails: if the config store is down the list is simply empty.
    """
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        feed = BannerService().active_banners()

        debug = {
            'currentDay': feed.current_day,
            'timezone': feed.timezone,
            'numActive': len(feed.banners),
        }
        if feed.degraded:
            debug['degraded'] = True

        return Response({'banners': feed.banners, 'debug': debug}, status=status.HTTP_200_OK)


class BannerListAPIView(APIView):
    """
    Every configured banner (active or not) for the admin panel toggles.

    GET /api/config/banners/list
    """
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        try:
            entries = BannerService().list_banners()
        except BannerError as e:
            return banner_error_response(e)

        banners = [
            {
                'fileName': entry.id,
                'isDailyBanner': False,
                'isActive': entry.active,
                'day': entry.day,
                'priority': entry.priority,
                'publicId': entry.asset_ref,
            }
            for entry in entries
        ]
        return Response({'config': {}, 'banners': banners}, status=status.HTTP_200_OK)


class BannerConfigAPIView(APIView):
    """
    Partial update of one banner's rule.

    PUT /api/config/banners
    Body: {"file": "<banner url>", "active": true, "day": "monday", "priority": 1}
    """
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]

    def put(self, request, *args, **kwargs):
        serializer = BannerUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Banner update validation failed: {serializer.errors}")
            return error_response(first_error(serializer.errors), status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            entry = BannerService().update_banner(
                data['file'],
                data['active'],
                day=data.get('day'),
                priority=data.get('priority'),
            )
        except BannerError as e:
            return banner_error_response(e)

        return Response({
            'success': True,
            'new_state': entry.active,
            'banner_file': entry.id,
            'new_day': entry.day,
            'new_priority': entry.priority,
            'message': f'Banner {entry.id} configuration updated successfully.',
        }, status=status.HTTP_200_OK)


class BannerUploadAPIView(APIView):
    """
    Upload a new banner image and register it as active, random day, priority 999.

    POST /api/banners/upload (multipart field "bannerFile")
    """
    permission_classes = [AllowAny]
    parser_classes = [MultiPartParser, FormParser]
    throttle_classes = [BannerUploadThrottle]

    def post(self, request, *args, **kwargs):
        serializer = BannerUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors), status.HTTP_400_BAD_REQUEST)

        upload = serializer.validated_data['bannerFile']
        try:
            entry = BannerService().create_banner(
                upload.read(),
                filename=upload.name,
                content_type=getattr(upload, 'content_type', None),
            )
        except BannerError as e:
            return banner_error_response(e)

        return Response({
            'success': True,
            'message': 'Banner uploaded and activated as random with low priority (999)!',
            'url': entry.id,
            'publicId': entry.asset_ref,
        }, status=status.HTTP_200_OK)


class BannerDeleteAPIView(APIView):
    """
    Delete a banner from the asset host and from the config.

    DELETE /api/banners/delete
    Body (or query string): {"fileUrl": "<banner url>", "publicId": "<asset ref, optional>"}
    """
    permission_classes = [AllowAny]

    def delete(self, request, *args, **kwargs):
        payload = request.data if request.data else request.query_params
        serializer = BannerDeleteSerializer(data=payload)
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors), status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            result = BannerService().delete_banner(data['fileUrl'], asset_ref=data.get('publicId') or None)
        except BannerError as e:
            return banner_error_response(e)

        label = result.asset_ref or result.banner_id
        if result.removed:
            message = f'Banner {label} deleted from the asset host and the banner list.'
        else:
            message = f'Banner {label} was already removed from the banner list.'
        return Response({'success': True, 'message': message}, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """
    Health check endpoint for monitoring

    GET /api/banners/health

    Returns:
        - status: "healthy" or "unhealthy"
        - timestamp: Current server time
        - checks: config store reachability, asset host configuration
    """
    service = BannerService()
    checks = {}
    overall_healthy = True

    try:
        service.store.ping()
        checks['config_store'] = f'healthy ({service.store.name})'
    except ConfigUnavailable as e:
        checks['config_store'] = f'unhealthy: {e.message}'
        overall_healthy = False

    try:
        host = service.asset_host
        if host.is_configured():
            checks['asset_host'] = f'healthy ({host.name})'
        else:
            checks['asset_host'] = f'unhealthy: {host.name} not configured'
            overall_healthy = False
    except BannerError as e:
        checks['asset_host'] = f'unhealthy: {e.message}'
        overall_healthy = False

    return Response({
        'status': 'healthy' if overall_healthy else 'unhealthy',
        'timestamp': timezone.now().isoformat(),
        'checks': checks,
    }, status=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE)
