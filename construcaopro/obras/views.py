import logging

from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from construcaopro.core.permissions import (
    is_admin, is_gestor_or_above, has_obra_access, filter_by_obra_access
)
from construcaopro.core.utils import create_audit_log
from .models import Obra, Almoxarifado, UsuarioObra
from .serializers import ObraSerializer, AlmoxarifadoSerializer

logger = logging.getLogger('construcaopro.obras')


def get_obra_for_user(request, pk):
    """Fetch an obra, answering 404 when the user has no access to it"""
    obra = get_object_or_404(Obra, pk=pk)
    if not has_obra_access(request.user, obra.pk):
        return None
    return obra


# Obra views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def obra_list_create(request):
    """List accessible obras or create a new obra (create requires GESTOR)"""
    if request.method == 'GET':
        obras = Obra.objects.annotate(almoxarifados_count=Count('almoxarifados'))
        obras = filter_by_obra_access(obras, request.user, field='id')

        status_filter = request.query_params.get('status')
        if status_filter:
            obras = obras.filter(status=status_filter)

        search = request.query_params.get('search', '').strip()
        if search:
            obras = obras.filter(Q(nome__icontains=search) | Q(endereco__icontains=search))

        obras = obras.order_by('-created_at')
        serializer = ObraSerializer(obras, many=True)
        return Response(serializer.data)

    if not is_gestor_or_above(request.user):
        logger.warning(f"User {request.user.email} attempted to create obra without GESTOR role")
        return Response({'error': 'Apenas gestores podem criar obras'}, status=status.HTTP_403_FORBIDDEN)

    serializer = ObraSerializer(data=request.data)
    if serializer.is_valid():
        obra = serializer.save()
        # Creator keeps access to the obra
        if not is_admin(request.user):
            UsuarioObra.objects.get_or_create(usuario=request.user, obra=obra)
        create_audit_log(request=request, acao='create', entidade='Obra', entidade_id=obra.id,
                         entidade_nome=obra.nome, payload={'status': obra.status, 'orcamento': str(obra.orcamento)})
        logger.info(f"Obra '{obra.nome}' created by {request.user.email}")
        return Response(ObraSerializer(obra).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Obra creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def obra_detail(request, pk):
    """Retrieve, update or delete an obra (modify requires GESTOR)"""
    obra = get_obra_for_user(request, pk)
    if obra is None:
        return Response({'error': 'Obra não encontrada'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        obra.almoxarifados_count = obra.almoxarifados.count()
        return Response(ObraSerializer(obra).data)

    if not is_gestor_or_above(request.user):
        logger.warning(f"User {request.user.email} attempted to modify obra {pk} without GESTOR role")
        return Response({'error': 'Apenas gestores podem alterar obras'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ObraSerializer(obra, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='Obra', entidade_id=obra.id,
                             entidade_nome=obra.nome,
                             payload={k: str(v) for k, v in serializer.validated_data.items()})
            logger.info(f"Obra {pk} updated by {request.user.email}")
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    create_audit_log(request=request, acao='delete', entidade='Obra', entidade_id=obra.id, entidade_nome=obra.nome)
    logger.info(f"Obra {pk} ({obra.nome}) deleted by {request.user.email}")
    obra.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def obra_almoxarifados(request, pk):
    """List almoxarifados of an obra"""
    obra = get_obra_for_user(request, pk)
    if obra is None:
        return Response({'error': 'Obra não encontrada'}, status=status.HTTP_404_NOT_FOUND)
    almoxarifados = obra.almoxarifados.select_related('obra').order_by('nome')
    return Response(AlmoxarifadoSerializer(almoxarifados, many=True).data)


# Almoxarifado views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def almoxarifado_list_create(request):
    """List accessible almoxarifados or create one (create requires GESTOR)"""
    if request.method == 'GET':
        almoxarifados = Almoxarifado.objects.select_related('obra')
        almoxarifados = filter_by_obra_access(almoxarifados, request.user)

        obra_id = request.query_params.get('obra')
        if obra_id:
            almoxarifados = almoxarifados.filter(obra_id=obra_id)

        almoxarifados = almoxarifados.order_by('nome')
        return Response(AlmoxarifadoSerializer(almoxarifados, many=True).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem criar almoxarifados'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AlmoxarifadoSerializer(data=request.data)
    if serializer.is_valid():
        obra = serializer.validated_data.get('obra')
        if obra is not None and not has_obra_access(request.user, obra.pk):
            return Response({'error': 'Sem acesso a esta obra'}, status=status.HTTP_403_FORBIDDEN)
        almoxarifado = serializer.save()
        create_audit_log(request=request, acao='create', entidade='Almoxarifado', entidade_id=almoxarifado.id,
                         entidade_nome=almoxarifado.nome, payload={'obra': almoxarifado.obra_id})
        logger.info(f"Almoxarifado '{almoxarifado.nome}' created by {request.user.email}")
        return Response(AlmoxarifadoSerializer(almoxarifado).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def almoxarifado_detail(request, pk):
    """Retrieve, update or delete an almoxarifado; delete cascades to its stock and movements"""
    almoxarifado = get_object_or_404(Almoxarifado.objects.select_related('obra'), pk=pk)
    if not has_obra_access(request.user, almoxarifado.obra_id):
        return Response({'error': 'Almoxarifado não encontrado'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(AlmoxarifadoSerializer(almoxarifado).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem alterar almoxarifados'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = AlmoxarifadoSerializer(almoxarifado, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='Almoxarifado', entidade_id=almoxarifado.id,
                             entidade_nome=almoxarifado.nome, payload={'obra': almoxarifado.obra_id})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='delete', entidade='Almoxarifado', entidade_id=almoxarifado.id,
                     entidade_nome=almoxarifado.nome)
    logger.info(f"Almoxarifado {pk} ({almoxarifado.nome}) deleted by {request.user.email}")
    almoxarifado.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
