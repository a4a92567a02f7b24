from django.urls import path
from .views import (
    nota_fiscal_list_create, nota_fiscal_importar_xml, nota_fiscal_detail,
    item_nf_create, item_nf_detail, nota_fiscal_vincular, nota_fiscal_rejeitar,
)

urlpatterns = [
    path('notas-fiscais/', nota_fiscal_list_create, name='nota-fiscal-list-create'),
    path('notas-fiscais/importar-xml/', nota_fiscal_importar_xml, name='nota-fiscal-importar-xml'),
    path('notas-fiscais/<int:pk>/', nota_fiscal_detail, name='nota-fiscal-detail'),
    path('notas-fiscais/<int:pk>/itens/', item_nf_create, name='item-nf-create'),
    path('notas-fiscais/<int:pk>/itens/<int:item_pk>/', item_nf_detail, name='item-nf-detail'),
    path('notas-fiscais/<int:pk>/vincular/', nota_fiscal_vincular, name='nota-fiscal-vincular'),
    path('notas-fiscais/<int:pk>/rejeitar/', nota_fiscal_rejeitar, name='nota-fiscal-rejeitar'),
]
