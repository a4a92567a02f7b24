from rest_framework import serializers
from .models import Obra, Almoxarifado, UsuarioObra


class ObraSerializer(serializers.ModelSerializer):
    almoxarifados_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Obra
        fields = ['id', 'nome', 'endereco', 'status', 'orcamento', 'valor_terreno', 'valor_burocracia',
                  'valor_construcao', 'valor_venda', 'almoxarifados_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_nome(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Nome deve ter pelo menos 2 caracteres")
        return value

    def validate_endereco(self, value):
        value = value.strip()
        if len(value) < 5:
            raise serializers.ValidationError("Endereço deve ter pelo menos 5 caracteres")
        return value


class AlmoxarifadoSerializer(serializers.ModelSerializer):
    obra_nome = serializers.CharField(source='obra.nome', read_only=True, default=None)

    class Meta:
        model = Almoxarifado
        fields = ['id', 'nome', 'obra', 'obra_nome', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_nome(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Nome deve ter pelo menos 2 caracteres")
        return value


class UsuarioObraSerializer(serializers.ModelSerializer):
    class Meta:
        model = UsuarioObra
        fields = ['id', 'usuario', 'obra', 'created_at']
