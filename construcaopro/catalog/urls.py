from django.urls import path
from .views import (
    categoria_list_create, categoria_detail,
    material_list_create, material_detail, material_etiqueta,
)

urlpatterns = [
    # Categoria endpoints
    path('categorias/', categoria_list_create, name='categoria-list-create'),
    path('categorias/<int:pk>/', categoria_detail, name='categoria-detail'),

    # Material endpoints
    path('materiais/', material_list_create, name='material-list-create'),
    path('materiais/<int:pk>/', material_detail, name='material-detail'),
    path('materiais/<int:pk>/etiqueta/', material_etiqueta, name='material-etiqueta'),
]
