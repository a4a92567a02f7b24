import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from construcaopro.core.exceptions import DomainError
from construcaopro.core.permissions import is_gestor_or_above
from construcaopro.core.utils import create_audit_log
from . import services
from .models import FinanceiroConta, FinanceiroMovimentacao
from .serializers import (
    FinanceiroContaSerializer, ContaCreateSerializer, FinanceiroMovimentacaoSerializer,
    MovimentacaoComContaSerializer, MovimentacaoInputSerializer, MetaSerializer
)

logger = logging.getLogger('construcaopro.financeiro')

FORBIDDEN_MESSAGE = 'Apenas gestores podem alterar o financeiro'


def _contas_por_id():
    return {str(c.pk): c for c in FinanceiroConta.objects.all()}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def conta_list_create(request):
    """List bank accounts or open a new one with an optional opening balance"""
    if request.method == 'GET':
        contas = FinanceiroConta.objects.all()
        return Response(FinanceiroContaSerializer(contas, many=True).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': FORBIDDEN_MESSAGE}, status=status.HTTP_403_FORBIDDEN)

    serializer = ContaCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        conta = services.abrir_conta(
            banco=data['banco'],
            agencia=data.get('agencia', ''),
            numero_conta=data.get('numero_conta', ''),
            valor_inicial=data.get('valor_inicial'),
            subconta=data.get('subconta', 'CAIXA'),
            usuario=request.user,
        )
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='create', entidade='FinanceiroConta', entidade_id=conta.id,
                     entidade_nome=str(conta), payload={'valor_inicial': str(data.get('valor_inicial') or 0)})
    return Response(FinanceiroContaSerializer(conta).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def conta_detail(request, pk):
    """
    Account detail with its grouped movement history.
    PUT/PATCH only change the bank data; balances move through movements.
    """
    conta = get_object_or_404(FinanceiroConta, pk=pk)

    if request.method == 'GET':
        movimentacoes = conta.movimentacoes.select_related('usuario').order_by('-data', '-created_at')
        context = {'contas': _contas_por_id()}
        data = FinanceiroContaSerializer(conta).data
        data['caixa_percentual'] = services.caixa_percentual(conta)
        data['grupos'] = [
            {'titulo': titulo, 'movimentacoes': FinanceiroMovimentacaoSerializer(itens, many=True, context=context).data}
            for titulo, itens in services.agrupar_movimentacoes(movimentacoes)
        ]
        return Response(data)

    if not is_gestor_or_above(request.user):
        return Response({'error': FORBIDDEN_MESSAGE}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = FinanceiroContaSerializer(conta, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='FinanceiroConta', entidade_id=conta.id,
                             entidade_nome=str(conta),
                             payload={k: str(v) for k, v in serializer.validated_data.items()})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='delete', entidade='FinanceiroConta', entidade_id=conta.id,
                     entidade_nome=str(conta),
                     payload={'valor_caixa': str(conta.valor_caixa), 'valor_aplicado': str(conta.valor_aplicado)})
    logger.info(f"Conta {pk} ({conta.banco}) deleted by {request.user.email}")
    conta.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def conta_movimentacoes(request, pk):
    """List the movements of an account or register a new one"""
    conta = get_object_or_404(FinanceiroConta, pk=pk)

    if request.method == 'GET':
        movimentacoes = conta.movimentacoes.select_related('usuario').order_by('-data', '-created_at')
        serializer = FinanceiroMovimentacaoSerializer(movimentacoes, many=True, context={'contas': _contas_por_id()})
        return Response(serializer.data)

    if not is_gestor_or_above(request.user):
        return Response({'error': FORBIDDEN_MESSAGE}, status=status.HTTP_403_FORBIDDEN)

    serializer = MovimentacaoInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        movimentacao = services.registrar_movimentacao(
            conta=conta,
            tipo=data['tipo'],
            subconta=data['subconta'],
            motivo=data['motivo'],
            valor=data['valor'],
            data=data.get('data'),
            destino=data.get('transferencia_destino'),
            usuario=request.user,
        )
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='financeiro_movimentacao', entidade='FinanceiroMovimentacao',
                     entidade_id=movimentacao.id, entidade_nome=movimentacao.motivo,
                     payload={'conta': conta.id, 'tipo': movimentacao.tipo, 'subconta': movimentacao.subconta,
                              'valor': str(movimentacao.valor), 'destino': movimentacao.transferencia_destino})
    return Response(FinanceiroMovimentacaoSerializer(movimentacao).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movimentacao_list(request):
    """All financial movements with their account embedded"""
    movimentacoes = FinanceiroMovimentacao.objects.select_related('conta', 'usuario').order_by('-data', '-created_at')

    tipo = request.query_params.get('tipo')
    if tipo:
        movimentacoes = movimentacoes.filter(tipo=tipo)
    conta_id = request.query_params.get('conta')
    if conta_id:
        movimentacoes = movimentacoes.filter(conta_id=conta_id)
    date_from = request.query_params.get('date_from')
    if date_from:
        movimentacoes = movimentacoes.filter(data__gte=date_from)
    date_to = request.query_params.get('date_to')
    if date_to:
        movimentacoes = movimentacoes.filter(data__lte=date_to)

    serializer = MovimentacaoComContaSerializer(movimentacoes, many=True, context={'contas': _contas_por_id()})
    return Response(serializer.data)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def movimentacao_detail(request, pk):
    """Retrieve a financial movement; DELETE reverses its effect on the balances"""
    movimentacao = get_object_or_404(FinanceiroMovimentacao.objects.select_related('conta', 'usuario'), pk=pk)

    if request.method == 'GET':
        return Response(MovimentacaoComContaSerializer(movimentacao).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': FORBIDDEN_MESSAGE}, status=status.HTTP_403_FORBIDDEN)

    payload = {'conta': movimentacao.conta_id, 'tipo': movimentacao.tipo, 'subconta': movimentacao.subconta,
               'valor': str(movimentacao.valor), 'destino': movimentacao.transferencia_destino}
    try:
        services.estornar_movimentacao(movimentacao)
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='financeiro_estorno', entidade='FinanceiroMovimentacao',
                     entidade_id=pk, entidade_nome=movimentacao.motivo, payload=payload)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def resumo(request):
    """Totals across every account plus savings goal and land plots on standby"""
    data = services.calcular_resumo()
    return Response({
        'total_caixa': str(data['total_caixa']),
        'total_aplicado': str(data['total_aplicado']),
        'total_disponivel': str(data['total_disponivel']),
        'contas': data['contas'],
        'meta': str(data['meta']),
        'meta_percentual': data['meta_percentual'],
        'meta_faltante': str(data['meta_faltante']),
        'terrenos': {
            'quantidade': data['terrenos']['quantidade'],
            'valor_total': str(data['terrenos']['valor_total']),
        },
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def meta(request):
    """Get or set the savings goal"""
    if request.method == 'GET':
        return Response({'meta': str(services.get_meta())})

    if not is_gestor_or_above(request.user):
        return Response({'error': FORBIDDEN_MESSAGE}, status=status.HTTP_403_FORBIDDEN)

    serializer = MetaSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        valor = services.set_meta(serializer.validated_data['meta'])
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='update', entidade='Setting', entidade_id=services.META_SETTING_KEY,
                     entidade_nome=services.META_SETTING_KEY,
                     payload={'meta': str(valor)})
    return Response({'meta': str(valor)})
