from django.urls import path
from .views import (
    estoque_list, estoque_detail, estoque_por_obra, estoque_alertas, obra_estoque,
    movimentacao_list, movimentacao_detail, obra_movimentacoes,
    movimentacao_entrada, movimentacao_saida, movimentacao_transferencia,
    movimentacao_aprovar, movimentacao_rejeitar,
)

urlpatterns = [
    # Estoque endpoints
    path('estoque/', estoque_list, name='estoque-list'),
    path('estoque/por-obra/', estoque_por_obra, name='estoque-por-obra'),
    path('estoque/alertas/', estoque_alertas, name='estoque-alertas'),
    path('estoque/<int:pk>/', estoque_detail, name='estoque-detail'),
    path('obras/<int:pk>/estoque/', obra_estoque, name='obra-estoque'),

    # Movimentacao endpoints
    path('movimentacoes/', movimentacao_list, name='movimentacao-list'),
    path('movimentacoes/entrada/', movimentacao_entrada, name='movimentacao-entrada'),
    path('movimentacoes/saida/', movimentacao_saida, name='movimentacao-saida'),
    path('movimentacoes/transferencia/', movimentacao_transferencia, name='movimentacao-transferencia'),
    path('movimentacoes/<int:pk>/', movimentacao_detail, name='movimentacao-detail'),
    path('movimentacoes/<int:pk>/aprovar/', movimentacao_aprovar, name='movimentacao-aprovar'),
    path('movimentacoes/<int:pk>/rejeitar/', movimentacao_rejeitar, name='movimentacao-rejeitar'),
    path('obras/<int:pk>/movimentacoes/', obra_movimentacoes, name='obra-movimentacoes'),
]
