from django.urls import path
from .views import (
    documento_list_create, documento_detail, documento_download,
    documento_categoria_list_create, documento_categoria_detail,
)

urlpatterns = [
    path('documentos/', documento_list_create, name='documento-list'),
    path('documentos/<int:pk>/', documento_detail, name='documento-detail'),
    path('documentos/<int:pk>/download/', documento_download, name='documento-download'),
    path('documento-categorias/', documento_categoria_list_create, name='documento-categoria-list'),
    path('documento-categorias/<int:pk>/', documento_categoria_detail, name='documento-categoria-detail'),
]
