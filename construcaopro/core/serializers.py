from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Setting, AuditLog


class UserSerializer(serializers.ModelSerializer):
    obras = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'nome', 'role', 'is_active', 'is_superuser', 'obras', 'created_at', 'updated_at']
        read_only_fields = ['is_superuser', 'created_at', 'updated_at']

    def get_obras(self, obj):
        return list(obj.obras_vinculadas.values_list('obra_id', flat=True))


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'nome', 'role', 'password', 'password_confirm']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "As senhas não conferem"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class AuditLogSerializer(serializers.ModelSerializer):
    usuario_nome = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = ['id', 'usuario', 'usuario_nome', 'acao', 'entidade', 'entidade_id', 'entidade_nome',
                  'payload', 'ip_address', 'created_at']

    def get_usuario_nome(self, obj):
        if obj.usuario:
            return str(obj.usuario)
        return None
