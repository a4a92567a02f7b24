import logging
import mimetypes

from django.db import transaction
from django.db.models import Count, Q
from django.http import FileResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from construcaopro.core.permissions import (
    is_gestor_or_above, is_almoxarife_or_above, has_obra_access, get_accessible_obra_ids
)
from construcaopro.core.utils import create_audit_log
from .models import Documento, DocumentoCategoria
from .serializers import DocumentoSerializer, DocumentoCategoriaSerializer, DocumentoUploadSerializer

logger = logging.getLogger('construcaopro.documentos')


def _documentos_visiveis(user):
    """Documents without obra are shared; the rest follow obra access"""
    queryset = Documento.objects.select_related('categoria', 'obra', 'enviado_por')
    obra_ids = get_accessible_obra_ids(user)
    if obra_ids is None:
        return queryset
    return queryset.filter(Q(obra__isnull=True) | Q(obra_id__in=obra_ids))


def _remover_arquivos(documentos):
    for documento in documentos:
        if not documento.arquivo:
            continue
        try:
            documento.arquivo.delete(save=False)
        except OSError as e:
            logger.warning(f"Could not remove {documento.arquivo.name} from storage: {str(e)}")


def _tipo_arquivo(arquivo):
    content_type = getattr(arquivo, 'content_type', None)
    if content_type and content_type != 'application/octet-stream':
        return content_type
    guessed, _ = mimetypes.guess_type(arquivo.name)
    return guessed or content_type or 'application/octet-stream'


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def documento_list_create(request):
    """List documents or upload one or more files (multipart field 'files')"""
    if request.method == 'GET':
        documentos = _documentos_visiveis(request.user)

        categoria_id = request.query_params.get('categoria')
        if categoria_id:
            documentos = documentos.filter(categoria_id=categoria_id)

        obra_id = request.query_params.get('obra')
        if obra_id:
            documentos = documentos.filter(obra_id=obra_id)

        search = request.query_params.get('search', '').strip()
        if search:
            documentos = documentos.filter(
                Q(nome__icontains=search) |
                Q(descricao__icontains=search) |
                Q(tipo_arquivo__icontains=search)
            )

        documentos = documentos.order_by('-created_at')
        serializer = DocumentoSerializer(documentos, many=True, context={'request': request})
        return Response(serializer.data)

    if not is_almoxarife_or_above(request.user):
        return Response({'error': 'Sem permissão para enviar documentos'}, status=status.HTTP_403_FORBIDDEN)

    data = {
        'files': request.FILES.getlist('files') or request.FILES.getlist('file'),
        'descricao': request.data.get('descricao'),
        'categoria': request.data.get('categoria') or None,
        'obra': request.data.get('obra') or None,
    }
    serializer = DocumentoUploadSerializer(data=data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    obra = serializer.validated_data.get('obra')
    if obra is not None and not has_obra_access(request.user, obra.pk):
        return Response({'error': 'Sem acesso a esta obra'}, status=status.HTTP_403_FORBIDDEN)

    criados = []
    try:
        with transaction.atomic():
            for arquivo in serializer.validated_data['files']:
                criados.append(Documento.objects.create(
                    nome=arquivo.name,
                    descricao=serializer.validated_data.get('descricao') or None,
                    arquivo=arquivo,
                    tipo_arquivo=_tipo_arquivo(arquivo),
                    tamanho=arquivo.size,
                    categoria=serializer.validated_data.get('categoria'),
                    obra=obra,
                    enviado_por=request.user,
                ))
    except Exception as e:
        # Rows were rolled back; stored files are not
        logger.error(f"Upload by {request.user.email} failed after {len(criados)} file(s): {str(e)}", exc_info=True)
        _remover_arquivos(criados)
        raise

    for documento in criados:
        create_audit_log(request=request, acao='documento_upload', entidade='Documento', entidade_id=documento.id,
                         entidade_nome=documento.nome,
                         payload={'tamanho': documento.tamanho, 'tipo_arquivo': documento.tipo_arquivo,
                                  'obra': documento.obra_id})

    logger.info(f"{len(criados)} document(s) uploaded by {request.user.email}")
    serializer = DocumentoSerializer(criados, many=True, context={'request': request})
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def documento_detail(request, pk):
    """Retrieve, update metadata or delete a document (its file is removed from storage)"""
    documento = get_object_or_404(_documentos_visiveis(request.user), pk=pk)

    if request.method == 'GET':
        return Response(DocumentoSerializer(documento, context={'request': request}).data)

    if not (is_gestor_or_above(request.user) or documento.enviado_por_id == request.user.id):
        return Response({'error': 'Sem permissão para alterar este documento'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'PATCH':
        serializer = DocumentoSerializer(documento, data=request.data, partial=True, context={'request': request})
        if serializer.is_valid():
            obra = serializer.validated_data.get('obra')
            if obra is not None and not has_obra_access(request.user, obra.pk):
                return Response({'error': 'Sem acesso a esta obra'}, status=status.HTTP_403_FORBIDDEN)
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='Documento', entidade_id=documento.id,
                             entidade_nome=documento.nome,
                             payload={k: str(v) for k, v in serializer.validated_data.items()})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    nome = documento.nome
    _remover_arquivos([documento])
    documento.delete()
    create_audit_log(request=request, acao='delete', entidade='Documento', entidade_id=pk, entidade_nome=nome)
    logger.info(f"Documento {pk} ({nome}) deleted by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def documento_download(request, pk):
    """Stream the stored file as an attachment"""
    documento = get_object_or_404(_documentos_visiveis(request.user), pk=pk)
    try:
        arquivo = documento.arquivo.open('rb')
    except (FileNotFoundError, ValueError):
        logger.error(f"File of documento {pk} is missing from storage")
        return Response({'error': 'Arquivo não encontrado'}, status=status.HTTP_404_NOT_FOUND)
    return FileResponse(arquivo, as_attachment=True, filename=documento.nome,
                        content_type=documento.tipo_arquivo or 'application/octet-stream')


# DocumentoCategoria views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def documento_categoria_list_create(request):
    """List document categories with their document count or create one"""
    if request.method == 'GET':
        categorias = DocumentoCategoria.objects.annotate(documentos_count=Count('documentos')).order_by('nome')
        return Response(DocumentoCategoriaSerializer(categorias, many=True).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem gerenciar categorias'}, status=status.HTTP_403_FORBIDDEN)

    serializer = DocumentoCategoriaSerializer(data=request.data)
    if serializer.is_valid():
        categoria = serializer.save()
        create_audit_log(request=request, acao='create', entidade='DocumentoCategoria', entidade_id=categoria.id,
                         entidade_nome=categoria.nome, payload={'cor': categoria.cor})
        return Response(DocumentoCategoriaSerializer(categoria).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def documento_categoria_detail(request, pk):
    """Retrieve, update or delete a document category; its documents become uncategorized"""
    categoria = get_object_or_404(DocumentoCategoria, pk=pk)

    if request.method == 'GET':
        categoria.documentos_count = categoria.documentos.count()
        return Response(DocumentoCategoriaSerializer(categoria).data)

    if not is_gestor_or_above(request.user):
        return Response({'error': 'Apenas gestores podem gerenciar categorias'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = DocumentoCategoriaSerializer(categoria, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='DocumentoCategoria', entidade_id=categoria.id,
                             entidade_nome=categoria.nome, payload={'cor': categoria.cor})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, acao='delete', entidade='DocumentoCategoria', entidade_id=categoria.id,
                     entidade_nome=categoria.nome)
    categoria.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
