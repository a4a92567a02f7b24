from django.urls import path
from .views import (
    conta_list_create, conta_detail, conta_movimentacoes,
    movimentacao_list, movimentacao_detail, resumo, meta,
)

urlpatterns = [
    path('financeiro/contas/', conta_list_create, name='financeiro-conta-list'),
    path('financeiro/contas/<int:pk>/', conta_detail, name='financeiro-conta-detail'),
    path('financeiro/contas/<int:pk>/movimentacoes/', conta_movimentacoes, name='financeiro-conta-movimentacoes'),
    path('financeiro/movimentacoes/', movimentacao_list, name='financeiro-movimentacao-list'),
    path('financeiro/movimentacoes/<int:pk>/', movimentacao_detail, name='financeiro-movimentacao-detail'),
    path('financeiro/resumo/', resumo, name='financeiro-resumo'),
    path('financeiro/meta/', meta, name='financeiro-meta'),
]
