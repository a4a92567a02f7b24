from django.urls import path
from .views import (
    obra_list_create, obra_detail, obra_almoxarifados,
    almoxarifado_list_create, almoxarifado_detail,
)

urlpatterns = [
    # Obra endpoints
    path('obras/', obra_list_create, name='obra-list-create'),
    path('obras/<int:pk>/', obra_detail, name='obra-detail'),
    path('obras/<int:pk>/almoxarifados/', obra_almoxarifados, name='obra-almoxarifados'),

    # Almoxarifado endpoints
    path('almoxarifados/', almoxarifado_list_create, name='almoxarifado-list-create'),
    path('almoxarifados/<int:pk>/', almoxarifado_detail, name='almoxarifado-detail'),
]
