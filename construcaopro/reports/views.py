import logging

from django.core.cache import cache
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from construcaopro.core.cache_signals import DASHBOARD_CACHE_PREFIX, access_cache_key
from construcaopro.core.permissions import filter_by_obra_access
from construcaopro.inventory.models import Movimentacao
from construcaopro.inventory.serializers import MovimentacaoSerializer
from construcaopro.obras.views import get_obra_for_user
from . import services

logger = logging.getLogger('construcaopro.reports')

DASHBOARD_CACHE_TTL = 300
OBRA_CUSTOS_CACHE_TTL = 120


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Headline numbers of the dashboard (get_dashboard_stats)"""
    cache_key = access_cache_key(DASHBOARD_CACHE_PREFIX, request.user, 'stats')
    data = cache.get(cache_key)
    if data is None:
        data = services.get_dashboard_stats(request.user)
        cache.set(cache_key, data, DASHBOARD_CACHE_TTL)
        logger.debug(f"Dashboard stats computed for {request.user.email}")
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_custo_por_obra(request):
    """Material cost against budget for every accessible obra (get_custo_por_obra)"""
    cache_key = access_cache_key(DASHBOARD_CACHE_PREFIX, request.user, 'custo_por_obra')
    data = cache.get(cache_key)
    if data is None:
        data = services.get_custo_por_obra(request.user)
        cache.set(cache_key, data, DASHBOARD_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_movimentacoes_recentes(request):
    """Latest stock movements (get_movimentacoes_recentes), ?limit=10 by default"""
    try:
        limit = int(request.query_params.get('limit', 10))
    except (TypeError, ValueError):
        return Response({'error': 'limit deve ser um número inteiro'}, status=status.HTTP_400_BAD_REQUEST)
    limit = max(1, min(limit, 100))

    movimentacoes = Movimentacao.objects.select_related(
        'material', 'almoxarifado', 'almoxarifado__obra', 'almoxarifado_destino', 'fornecedor', 'usuario'
    )
    movimentacoes = filter_by_obra_access(movimentacoes, request.user, field='almoxarifado__obra_id')
    movimentacoes = movimentacoes.order_by('-created_at')[:limit]
    return Response(MovimentacaoSerializer(movimentacoes, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def obra_custos(request, pk):
    """Cost breakdown of one obra (get_obra_custos)"""
    obra = get_obra_for_user(request, pk)
    if obra is None:
        return Response({'error': 'Obra não encontrada'}, status=status.HTTP_404_NOT_FOUND)

    cache_key = f"{DASHBOARD_CACHE_PREFIX}_obra_custos_{obra.pk}"
    data = cache.get(cache_key)
    if data is None:
        try:
            data = services.get_obra_custos(obra)
        except Exception as e:
            logger.error(f"Error computing costs of obra {pk}: {str(e)}", exc_info=True)
            return Response({'error': 'Falha ao calcular custos da obra'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        cache.set(cache_key, data, OBRA_CUSTOS_CACHE_TTL)
    return Response(data)
