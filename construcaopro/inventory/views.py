import logging

from django.core.cache import cache
from django.db.models import F
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from construcaopro.core.cache_signals import ESTOQUE_CACHE_PREFIX, access_cache_key
from construcaopro.core.exceptions import DomainError
from construcaopro.core.permissions import (
    is_almoxarife_or_above, has_obra_access, filter_by_obra_access
)
from construcaopro.core.utils import create_audit_log
from construcaopro.obras.views import get_obra_for_user
from . import services
from .filters import EstoqueFilter, MovimentacaoFilter
from .models import Estoque, Movimentacao
from .serializers import (
    EstoqueSerializer, MovimentacaoSerializer,
    EntradaInputSerializer, SaidaInputSerializer, TransferenciaInputSerializer
)

logger = logging.getLogger('construcaopro.inventory')

ESTOQUE_CACHE_TTL = 300
MOVIMENTACOES_DEFAULT_LIMIT = 200
MOVIMENTACOES_MAX_LIMIT = 1000


def _estoque_queryset():
    return Estoque.objects.select_related('material', 'material__categoria', 'almoxarifado', 'almoxarifado__obra')


def _movimentacao_queryset():
    return Movimentacao.objects.select_related(
        'material', 'almoxarifado', 'almoxarifado__obra', 'almoxarifado_destino', 'fornecedor', 'usuario'
    )


def _parse_limit(request, default=MOVIMENTACOES_DEFAULT_LIMIT):
    try:
        limit = int(request.query_params.get('limit', default))
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, MOVIMENTACOES_MAX_LIMIT))


# Estoque views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def estoque_list(request):
    """List stock rows of accessible obras"""
    queryset = filter_by_obra_access(_estoque_queryset(), request.user, field='almoxarifado__obra_id')
    filterset = EstoqueFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs.order_by('material__nome', 'almoxarifado__nome')
    return Response(EstoqueSerializer(queryset, many=True).data)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def estoque_detail(request, pk):
    """Retrieve a stock row; DELETE empties it through a SAIDA movement"""
    estoque = get_object_or_404(_estoque_queryset(), pk=pk)
    if not has_obra_access(request.user, estoque.almoxarifado.obra_id):
        return Response({'error': 'Estoque não encontrado'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(EstoqueSerializer(estoque).data)

    if not is_almoxarife_or_above(request.user):
        return Response({'error': 'Sem permissão para movimentar estoque'}, status=status.HTTP_403_FORBIDDEN)

    quantidade_anterior = estoque.quantidade
    try:
        movimentacao = services.zerar_estoque(estoque, usuario=request.user)
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='estoque_zerar', entidade='Estoque', entidade_id=estoque.id,
                     entidade_nome=estoque.material.nome,
                     payload={'quantidade_anterior': str(quantidade_anterior), 'movimentacao': movimentacao.id})
    estoque.refresh_from_db()
    return Response(EstoqueSerializer(estoque).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def estoque_por_obra(request):
    """Stock grouped by obra with totals"""
    cache_key = access_cache_key(ESTOQUE_CACHE_PREFIX, request.user)
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        logger.debug(f"Cache hit for {cache_key}")
        return Response(cached_data)

    queryset = filter_by_obra_access(_estoque_queryset(), request.user, field='almoxarifado__obra_id')
    data = services.agrupar_estoque_por_obra(queryset)
    cache.set(cache_key, data, ESTOQUE_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def estoque_alertas(request):
    """Stock rows at or below the material minimum (get_estoque_alertas)"""
    queryset = filter_by_obra_access(_estoque_queryset(), request.user, field='almoxarifado__obra_id')
    queryset = queryset.filter(
        material__estoque_minimo__gt=0,
        quantidade__lte=F('material__estoque_minimo')
    ).order_by('quantidade', 'material__nome')
    return Response(EstoqueSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def obra_estoque(request, pk):
    """Stock rows of one obra"""
    obra = get_obra_for_user(request, pk)
    if obra is None:
        return Response({'error': 'Obra não encontrada'}, status=status.HTTP_404_NOT_FOUND)
    queryset = _estoque_queryset().filter(almoxarifado__obra=obra).order_by('material__nome', 'almoxarifado__nome')
    return Response(EstoqueSerializer(queryset, many=True).data)


# Movimentacao views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movimentacao_list(request):
    """List movements newest first; limit defaults to 200"""
    queryset = filter_by_obra_access(_movimentacao_queryset(), request.user, field='almoxarifado__obra_id')
    filterset = MovimentacaoFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs.order_by('-created_at', '-id')[:_parse_limit(request)]
    return Response(MovimentacaoSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movimentacao_detail(request, pk):
    movimentacao = get_object_or_404(_movimentacao_queryset(), pk=pk)
    if not has_obra_access(request.user, movimentacao.almoxarifado.obra_id):
        return Response({'error': 'Movimentação não encontrada'}, status=status.HTTP_404_NOT_FOUND)
    return Response(MovimentacaoSerializer(movimentacao).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def obra_movimentacoes(request, pk):
    """Movements touching one obra, as origin or destination"""
    obra = get_obra_for_user(request, pk)
    if obra is None:
        return Response({'error': 'Obra não encontrada'}, status=status.HTTP_404_NOT_FOUND)
    filterset = MovimentacaoFilter({**request.query_params.dict(), 'obra': obra.pk}, queryset=_movimentacao_queryset())
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs.order_by('-created_at', '-id')[:_parse_limit(request)]
    return Response(MovimentacaoSerializer(queryset, many=True).data)


def _check_movimentacao_permission(request, *almoxarifados):
    if not is_almoxarife_or_above(request.user):
        logger.warning(f"User {request.user.email} attempted a stock movement without ALMOXARIFE role")
        return Response({'error': 'Sem permissão para movimentar estoque'}, status=status.HTTP_403_FORBIDDEN)
    for almoxarifado in almoxarifados:
        if not has_obra_access(request.user, almoxarifado.obra_id):
            return Response({'error': 'Sem acesso a esta obra'}, status=status.HTTP_403_FORBIDDEN)
    return None


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def movimentacao_entrada(request):
    """Register an ENTRADA (criar_movimentacao_entrada)"""
    serializer = EntradaInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    denied = _check_movimentacao_permission(request, data['almoxarifado'])
    if denied:
        return denied

    try:
        movimentacao = services.criar_movimentacao_entrada(usuario=request.user, **data)
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='movimentacao_entrada', entidade='Movimentacao', entidade_id=movimentacao.id,
                     entidade_nome=movimentacao.material.nome,
                     payload={'quantidade': str(movimentacao.quantidade), 'almoxarifado': movimentacao.almoxarifado_id,
                              'preco_unitario': str(movimentacao.preco_unitario)})
    return Response(MovimentacaoSerializer(movimentacao).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def movimentacao_saida(request):
    """Register a SAIDA (criar_movimentacao_saida)"""
    serializer = SaidaInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    denied = _check_movimentacao_permission(request, data['almoxarifado'])
    if denied:
        return denied

    try:
        movimentacao = services.criar_movimentacao_saida(usuario=request.user, **data)
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='movimentacao_saida', entidade='Movimentacao', entidade_id=movimentacao.id,
                     entidade_nome=movimentacao.material.nome,
                     payload={'quantidade': str(movimentacao.quantidade), 'almoxarifado': movimentacao.almoxarifado_id})
    return Response(MovimentacaoSerializer(movimentacao).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def movimentacao_transferencia(request):
    """Request a TRANSFERENCIA (criar_movimentacao_transferencia)"""
    serializer = TransferenciaInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    denied = _check_movimentacao_permission(request, data['almoxarifado'], data['almoxarifado_destino'])
    if denied:
        return denied

    try:
        movimentacao = services.criar_movimentacao_transferencia(usuario=request.user, **data)
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='transferencia_criar', entidade='Movimentacao', entidade_id=movimentacao.id,
                     entidade_nome=movimentacao.material.nome,
                     payload={'quantidade': str(movimentacao.quantidade), 'origem': movimentacao.almoxarifado_id,
                              'destino': movimentacao.almoxarifado_destino_id})
    return Response(MovimentacaoSerializer(movimentacao).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def movimentacao_aprovar(request, pk):
    """Approve a transfer one level (aprovar_transferencia)"""
    movimentacao = get_object_or_404(Movimentacao, pk=pk)
    if not has_obra_access(request.user, movimentacao.almoxarifado.obra_id):
        return Response({'error': 'Movimentação não encontrada'}, status=status.HTTP_404_NOT_FOUND)

    try:
        movimentacao = services.aprovar_transferencia(movimentacao, request.user)
    except DomainError as e:
        logger.warning(f"Approval of transfer {pk} refused: {e.message}")
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='transferencia_aprovar', entidade='Movimentacao', entidade_id=movimentacao.id,
                     entidade_nome=movimentacao.material.nome,
                     payload={'status_transferencia': movimentacao.status_transferencia})
    movimentacao = _movimentacao_queryset().get(pk=movimentacao.pk)
    return Response(MovimentacaoSerializer(movimentacao).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def movimentacao_rejeitar(request, pk):
    """Reject a transfer (rejeitar_transferencia)"""
    movimentacao = get_object_or_404(Movimentacao, pk=pk)
    if not has_obra_access(request.user, movimentacao.almoxarifado.obra_id):
        return Response({'error': 'Movimentação não encontrada'}, status=status.HTTP_404_NOT_FOUND)

    try:
        movimentacao = services.rejeitar_transferencia(movimentacao, request.user, motivo=request.data.get('motivo'))
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='transferencia_rejeitar', entidade='Movimentacao', entidade_id=movimentacao.id,
                     entidade_nome=movimentacao.material.nome,
                     payload={'motivo': request.data.get('motivo')})
    movimentacao = _movimentacao_queryset().get(pk=movimentacao.pk)
    return Response(MovimentacaoSerializer(movimentacao).data)
