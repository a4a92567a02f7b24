from django.urls import path
from .views import dashboard_stats, dashboard_custo_por_obra, dashboard_movimentacoes_recentes, obra_custos

urlpatterns = [
    path('dashboard/stats/', dashboard_stats, name='dashboard-stats'),
    path('dashboard/custo-por-obra/', dashboard_custo_por_obra, name='dashboard-custo-por-obra'),
    path('dashboard/movimentacoes-recentes/', dashboard_movimentacoes_recentes, name='dashboard-movimentacoes-recentes'),
    path('obras/<int:pk>/custos/', obra_custos, name='obra-custos'),
]
