import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from construcaopro.obras.models import Obra, UsuarioObra
from .models import Setting, AuditLog
from .permissions import (
    get_role, is_admin, is_gestor_or_above, is_almoxarife_or_above, get_accessible_obra_ids
)
from .serializers import (
    UserSerializer, UserCreateSerializer,
    SettingSerializer, AuditLogSerializer
)
from .utils import create_audit_log

User = get_user_model()
logger = logging.getLogger('construcaopro.core')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('Conta de usuário desativada.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['nome'] = user.nome
        token['role'] = get_role(user)
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that answers InvalidToken for users deleted after login"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token inválido ou expirado.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token inválido. Usuário não existe mais.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role flags and accessible obras"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['role'] = get_role(user)
    user_data['is_admin'] = is_admin(user)
    user_data['is_gestor_or_above'] = is_gestor_or_above(user)
    user_data['is_almoxarife_or_above'] = is_almoxarife_or_above(user)
    # None means every obra
    user_data['obras_acessiveis'] = get_accessible_obra_ids(user)
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def user_list_create(request):
    """List all users or create a new user"""
    if not is_admin(request.user):
        return Response({'error': 'Apenas administradores podem gerenciar usuários'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        users = User.objects.all().order_by('nome', 'email')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(request=request, acao='create', entidade='User', entidade_id=user.id,
                             entidade_nome=user.email, payload={'role': user.role})
            logger.info(f"User {user.email} created with role {user.role}")
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    if not is_admin(request.user):
        return Response({'error': 'Apenas administradores podem gerenciar usuários'}, status=status.HTTP_403_FORBIDDEN)

    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, acao='update', entidade='User', entidade_id=user.id,
                             entidade_nome=user.email,
                             payload={k: str(v) for k, v in serializer.validated_data.items()})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'Não é possível excluir o próprio usuário'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, acao='delete', entidade='User', entidade_id=user.id,
                         entidade_nome=user.email)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_obras(request, pk):
    """Link (POST) or unlink (DELETE) a user and an obra"""
    if not is_admin(request.user):
        return Response({'error': 'Apenas administradores podem gerenciar usuários'}, status=status.HTTP_403_FORBIDDEN)

    user = get_object_or_404(User, pk=pk)
    obra_id = request.data.get('obra')
    if not obra_id:
        return Response({'error': 'obra é obrigatória'}, status=status.HTTP_400_BAD_REQUEST)
    obra = get_object_or_404(Obra, pk=obra_id)

    if request.method == 'POST':
        UsuarioObra.objects.get_or_create(usuario=user, obra=obra)
        create_audit_log(request=request, acao='update', entidade='UsuarioObra', entidade_id=user.id,
                         entidade_nome=user.email, payload={'obra_vinculada': obra.id})
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)

    UsuarioObra.objects.filter(usuario=user, obra=obra).delete()
    create_audit_log(request=request, acao='update', entidade='UsuarioObra', entidade_id=user.id,
                     entidade_nome=user.email, payload={'obra_desvinculada': obra.id})
    return Response(UserSerializer(user).data)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if request.method == 'GET':
        settings = Setting.objects.all().order_by('key')
        serializer = SettingSerializer(settings, many=True)
        return Response(serializer.data)

    if not is_admin(request.user):
        return Response({'error': 'Apenas administradores podem alterar configurações'}, status=status.HTTP_403_FORBIDDEN)
    serializer = SettingSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def setting_detail(request, key):
    """Retrieve or update a setting by key"""
    setting = get_object_or_404(Setting, key=key)

    if request.method == 'GET':
        return Response(SettingSerializer(setting).data)

    if not is_admin(request.user):
        return Response({'error': 'Apenas administradores podem alterar configurações'}, status=status.HTTP_403_FORBIDDEN)
    serializer = SettingSerializer(setting, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering"""
    if not is_admin(request.user):
        return Response({'error': 'Apenas administradores podem ver o histórico'}, status=status.HTTP_403_FORBIDDEN)

    queryset = AuditLog.objects.select_related('usuario')

    acao = request.query_params.get('acao')
    if acao:
        queryset = queryset.filter(acao=acao)

    entidade = request.query_params.get('entidade')
    if entidade:
        queryset = queryset.filter(entidade=entidade)

    usuario = request.query_params.get('usuario')
    if usuario:
        queryset = queryset.filter(usuario_id=usuario)

    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    if not is_admin(request.user):
        return Response({'error': 'Apenas administradores podem ver o histórico'}, status=status.HTTP_403_FORBIDDEN)
    audit_log = get_object_or_404(AuditLog, pk=pk)
    return Response(AuditLogSerializer(audit_log).data)
