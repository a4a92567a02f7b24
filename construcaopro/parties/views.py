import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from construcaopro.core.permissions import is_gestor_or_above
from construcaopro.core.utils import create_audit_log
from .models import Fornecedor
from .serializers import FornecedorSerializer

logger = logging.getLogger('construcaopro.parties')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def fornecedor_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = Fornecedor.objects.all().order_by('nome')
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(nome__icontains=search) |
                Q(cnpj__icontains=search) |
                Q(telefone__icontains=search) |
                Q(email__icontains=search)
            )
        ativo = request.query_params.get('ativo')
        if ativo in ('true', 'false'):
            queryset = queryset.filter(ativo=ativo == 'true')
        serializer = FornecedorSerializer(queryset, many=True)
        return Response(serializer.data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem gerenciar fornecedores'}, status=status.HTTP_403_FORBIDDEN)

    serializer = FornecedorSerializer(data=request.data)
    if serializer.is_valid():
        fornecedor = serializer.save()
        create_audit_log(request=request, acao='create', entidade='Fornecedor', entidade_id=fornecedor.id,
                         entidade_nome=fornecedor.nome, payload={'cnpj': fornecedor.cnpj})
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def fornecedor_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    fornecedor = get_object_or_404(Fornecedor, pk=pk)

    if request.method == 'GET':
        return Response(FornecedorSerializer(fornecedor).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem gerenciar fornecedores'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = FornecedorSerializer(fornecedor, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='Fornecedor', entidade_id=fornecedor.id,
                             entidade_nome=fornecedor.nome, payload={'cnpj': fornecedor.cnpj})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='delete', entidade='Fornecedor', entidade_id=fornecedor.id,
                     entidade_nome=fornecedor.nome)
    logger.info(f"Fornecedor {pk} ({fornecedor.nome}) deleted by {request.user.email}")
    fornecedor.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
