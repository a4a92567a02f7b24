import logging

from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from construcaopro.core.exceptions import DomainError
from construcaopro.core.permissions import is_gestor_or_above, has_obra_access
from construcaopro.core.utils import create_audit_log
from construcaopro.obras.models import Almoxarifado
from construcaopro.parties.models import Fornecedor
from . import services
from .models import NotaFiscal, ItemNF
from .serializers import NotaFiscalSerializer, NotaFiscalListSerializer, ItemNFSerializer, ItemNFMaterialSerializer

logger = logging.getLogger('construcaopro.fiscal')


def _nota_queryset():
    return NotaFiscal.objects.select_related('fornecedor').prefetch_related('itens__material')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def nota_fiscal_list_create(request):
    """List notas fiscais newest first or register one manually"""
    if request.method == 'GET':
        queryset = NotaFiscal.objects.select_related('fornecedor').annotate(itens_count=Count('itens'))

        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        fornecedor = request.query_params.get('fornecedor')
        if fornecedor:
            queryset = queryset.filter(fornecedor_id=fornecedor)
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(numero__icontains=search) |
                Q(chave_acesso__icontains=search) |
                Q(nome_emitente__icontains=search) |
                Q(cnpj_emitente__icontains=search)
            )

        queryset = queryset.order_by('-created_at')
        return Response(NotaFiscalListSerializer(queryset, many=True).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem registrar notas fiscais'}, status=status.HTTP_403_FORBIDDEN)

    serializer = NotaFiscalSerializer(data=request.data)
    if serializer.is_valid():
        if not serializer.validated_data.get('fornecedor'):
            fornecedor = Fornecedor.objects.filter(cnpj=serializer.validated_data['cnpj_emitente']).first()
            nota = serializer.save(fornecedor=fornecedor)
        else:
            nota = serializer.save()
        create_audit_log(request=request, acao='create', entidade='NotaFiscal', entidade_id=nota.id,
                         entidade_nome=str(nota), payload={'chave_acesso': nota.chave_acesso, 'status': nota.status})
        return Response(NotaFiscalSerializer(_nota_queryset().get(pk=nota.pk)).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def nota_fiscal_importar_xml(request):
    """Import an NF-e XML file sent as multipart field 'file'"""
    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem importar notas fiscais'}, status=status.HTTP_403_FORBIDDEN)

    arquivo = request.FILES.get('file')
    if arquivo is None:
        return Response({'error': 'Envie o XML no campo "file"'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        nota = services.importar_nfe(arquivo.read())
    except DomainError as e:
        logger.warning(f"NF-e import refused ({arquivo.name}): {e.message}")
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='nf_importar', entidade='NotaFiscal', entidade_id=nota.id,
                     entidade_nome=str(nota), payload={'chave_acesso': nota.chave_acesso, 'arquivo': arquivo.name})
    return Response(NotaFiscalSerializer(_nota_queryset().get(pk=nota.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def nota_fiscal_detail(request, pk):
    """Retrieve or delete a nota fiscal; linked notes cannot be deleted"""
    nota = get_object_or_404(_nota_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(NotaFiscalSerializer(nota).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem excluir notas fiscais'}, status=status.HTTP_403_FORBIDDEN)
    if nota.status == 'VINCULADA':
        return Response({'error': 'Nota fiscal vinculada ao estoque não pode ser excluída'},
                        status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='delete', entidade='NotaFiscal', entidade_id=nota.id,
                     entidade_nome=str(nota), payload={'chave_acesso': nota.chave_acesso})
    nota.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def item_nf_detail(request, pk, item_pk):
    """Link (or unlink) an invoice line to a material"""
    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem alterar notas fiscais'}, status=status.HTTP_403_FORBIDDEN)

    item = get_object_or_404(ItemNF.objects.select_related('nota_fiscal'), pk=item_pk, nota_fiscal_id=pk)
    if item.nota_fiscal.status in ('VINCULADA', 'REJEITADA'):
        return Response({'error': f'Nota com status {item.nota_fiscal.status} não pode ser alterada'},
                        status=status.HTTP_400_BAD_REQUEST)

    serializer = ItemNFMaterialSerializer(item, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(ItemNFSerializer(item).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def nota_fiscal_vincular(request, pk):
    """Turn every item into an ENTRADA in the chosen almoxarifado"""
    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem vincular notas fiscais'}, status=status.HTTP_403_FORBIDDEN)

    nota = get_object_or_404(NotaFiscal, pk=pk)
    almoxarifado_id = request.data.get('almoxarifado')
    if not almoxarifado_id:
        return Response({'error': 'almoxarifado é obrigatório'}, status=status.HTTP_400_BAD_REQUEST)
    almoxarifado = get_object_or_404(Almoxarifado, pk=almoxarifado_id)
    if not has_obra_access(request.user, almoxarifado.obra_id):
        return Response({'error': 'Sem acesso a esta obra'}, status=status.HTTP_403_FORBIDDEN)

    try:
        nota, movimentacoes = services.vincular_nota_fiscal(
            nota, almoxarifado, usuario=request.user, forma_pagamento=request.data.get('forma_pagamento')
        )
    except DomainError as e:
        logger.warning(f"Linking NF {pk} refused: {e.message}")
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='nf_vincular', entidade='NotaFiscal', entidade_id=nota.id,
                     entidade_nome=str(nota),
                     payload={'almoxarifado': almoxarifado.id, 'movimentacoes': [m.id for m in movimentacoes]})
    return Response(NotaFiscalSerializer(_nota_queryset().get(pk=nota.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def nota_fiscal_rejeitar(request, pk):
    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem rejeitar notas fiscais'}, status=status.HTTP_403_FORBIDDEN)

    nota = get_object_or_404(NotaFiscal, pk=pk)
    try:
        nota = services.rejeitar_nota_fiscal(nota)
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='nf_rejeitar', entidade='NotaFiscal', entidade_id=nota.id,
                     entidade_nome=str(nota), payload={'motivo': request.data.get('motivo')})
    return Response(NotaFiscalSerializer(_nota_queryset().get(pk=nota.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def item_nf_create(request, pk):
    """Add an item to a manual note; a PENDENTE note becomes PROCESSADA"""
    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem alterar notas fiscais'}, status=status.HTTP_403_FORBIDDEN)

    nota = get_object_or_404(NotaFiscal, pk=pk)
    serializer = ItemNFSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        nota, item = services.adicionar_item_nota_fiscal(nota, **serializer.validated_data)
    except DomainError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='nf_item_adicionar', entidade='NotaFiscal', entidade_id=nota.id,
                     entidade_nome=str(nota),
                     payload={'item': item.id, 'descricao': item.descricao, 'quantidade': str(item.quantidade)})
    return Response(NotaFiscalSerializer(_nota_queryset().get(pk=nota.pk)).data, status=status.HTTP_201_CREATED)
