"""
URL configuration for the ConstruçãoPro backend.

Every app exposes its routes under ``/api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "ConstruçãoPro Admin"
admin.site.site_title = "ConstruçãoPro Admin Portal"
admin.site.index_title = "Gestão de obras, estoque e financeiro"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('construcaopro.core.urls')),
    path('api/v1/', include('construcaopro.obras.urls')),
    path('api/v1/', include('construcaopro.catalog.urls')),
    path('api/v1/', include('construcaopro.inventory.urls')),
    path('api/v1/', include('construcaopro.parties.urls')),
    path('api/v1/', include('construcaopro.fiscal.urls')),
    path('api/v1/', include('construcaopro.financeiro.urls')),
    path('api/v1/', include('construcaopro.documentos.urls')),
    path('api/v1/', include('construcaopro.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
