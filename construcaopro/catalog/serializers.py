from rest_framework import serializers
from .models import Categoria, Material


class CategoriaSerializer(serializers.ModelSerializer):
    materiais_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Categoria
        fields = ['id', 'nome', 'unidade', 'materiais_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_nome(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Nome deve ter pelo menos 2 caracteres")
        return value


class MaterialSerializer(serializers.ModelSerializer):
    categoria_nome = serializers.CharField(source='categoria.nome', read_only=True)
    unidade = serializers.CharField(source='categoria.unidade', read_only=True)

    class Meta:
        model = Material
        fields = ['id', 'nome', 'codigo', 'codigo_barras', 'descricao', 'categoria', 'categoria_nome',
                  'unidade', 'estoque_minimo', 'preco_unitario', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_nome(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Nome deve ter pelo menos 2 caracteres")
        return value

    def validate_codigo(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Código é obrigatório")
        return value

    def validate_codigo_barras(self, value):
        if value is not None:
            value = value.strip() or None
        return value
