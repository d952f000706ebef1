from django.urls import re_path
from . import api_views

app_name = 'ad_banner'

urlpatterns = [
    # Public feed - today's banners for the web client
    re_path(r'^api/banners/?$', api_views.BannerAPIView.as_view(), name='banners_api'),

    # Admin panel
    re_path(r'^api/banners/upload/?$', api_views.BannerUploadAPIView.as_view(), name='banner_upload'),
    re_path(r'^api/banners/delete/?$', api_views.BannerDeleteAPIView.as_view(), name='banner_delete'),
    re_path(r'^api/config/banners/list/?$', api_views.BannerListAPIView.as_view(), name='banner_list'),
    re_path(r'^api/config/banners/?$', api_views.BannerConfigAPIView.as_view(), name='banner_config'),

    # Monitoring
    re_path(r'^api/banners/health/?$', api_views.health_check, name='health_check'),
]
