import logging

from django.db import IntegrityError
from django.db.models import Count, ProtectedError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from construcaopro.core.permissions import is_gestor_or_above
from construcaopro.core.utils import create_audit_log
from .filters import MaterialFilter
from .label_generator import generate_material_label
from .models import Categoria, Material
from .serializers import CategoriaSerializer, MaterialSerializer

logger = logging.getLogger('construcaopro.catalog')


# Categoria views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def categoria_list_create(request):
    """List all categories or create a new category"""
    if request.method == 'GET':
        categorias = Categoria.objects.annotate(materiais_count=Count('materiais')).order_by('nome')
        serializer = CategoriaSerializer(categorias, many=True)
        return Response(serializer.data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem gerenciar categorias'}, status=status.HTTP_403_FORBIDDEN)

    serializer = CategoriaSerializer(data=request.data)
    if serializer.is_valid():
        categoria = serializer.save()
        create_audit_log(request=request, acao='create', entidade='Categoria', entidade_id=categoria.id,
                         entidade_nome=categoria.nome, payload={'unidade': categoria.unidade})
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def categoria_detail(request, pk):
    """Retrieve, update or delete a category"""
    categoria = get_object_or_404(Categoria, pk=pk)

    if request.method == 'GET':
        categoria.materiais_count = categoria.materiais.count()
        return Response(CategoriaSerializer(categoria).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem gerenciar categorias'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = CategoriaSerializer(categoria, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='Categoria', entidade_id=categoria.id,
                             entidade_nome=categoria.nome, payload={'unidade': categoria.unidade})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        categoria.delete()
    except ProtectedError:
        logger.warning(f"Refused to delete categoria {pk}: materials still reference it")
        return Response({'error': 'Categoria possui materiais vinculados e não pode ser excluída'},
                        status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, acao='delete', entidade='Categoria', entidade_id=pk, entidade_nome=categoria.nome)
    return Response(status=status.HTTP_204_NO_CONTENT)


# Material views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def material_list_create(request):
    """List all materials or create a new material"""
    if request.method == 'GET':
        queryset = Material.objects.select_related('categoria').order_by('nome')
        filterset = MaterialFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = MaterialSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem gerenciar materiais'}, status=status.HTTP_403_FORBIDDEN)

    serializer = MaterialSerializer(data=request.data)
    if serializer.is_valid():
        try:
            material = serializer.save()
        except IntegrityError as e:
            logger.error(f"IntegrityError creating material: {str(e)}", exc_info=True)
            return Response({'error': 'Já existe um material com este código'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, acao='create', entidade='Material', entidade_id=material.id,
                         entidade_nome=material.nome, payload={'codigo': material.codigo})
        logger.info(f"Material '{material.nome}' created by {request.user.email}")
        return Response(MaterialSerializer(material).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def material_detail(request, pk):
    """Retrieve, update or delete a material"""
    material = get_object_or_404(Material.objects.select_related('categoria'), pk=pk)

    if request.method == 'GET':
        return Response(MaterialSerializer(material).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem gerenciar materiais'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = MaterialSerializer(material, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='Material', entidade_id=material.id,
                             entidade_nome=material.nome,
                             payload={k: str(v) for k, v in serializer.validated_data.items()})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        material.delete()
    except ProtectedError:
        logger.warning(f"Refused to delete material {pk}: it has stock movements")
        return Response({'error': 'Material possui movimentações e não pode ser excluído'},
                        status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(request=request, acao='delete', entidade='Material', entidade_id=pk,
                     entidade_nome=material.nome, payload={'codigo': material.codigo})
    logger.info(f"Material {pk} ({material.nome}) deleted by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def material_etiqueta(request, pk):
    """Generate the Code128 label of a material"""
    material = get_object_or_404(Material.objects.select_related('categoria'), pk=pk)
    try:
        image_data_url = generate_material_label(material)
    except Exception as e:
        logger.error(f"Error generating label for material {pk}: {str(e)}", exc_info=True)
        return Response({'error': f'Falha ao gerar etiqueta: {str(e)}'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({
        'material': material.id,
        'codigo': material.codigo_barras or material.codigo,
        'image': image_data_url,
    })
