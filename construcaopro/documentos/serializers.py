from rest_framework import serializers

from construcaopro.obras.models import Obra
from .models import Documento, DocumentoCategoria


class DocumentoCategoriaSerializer(serializers.ModelSerializer):
    documentos_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = DocumentoCategoria
        fields = ['id', 'nome', 'cor', 'documentos_count', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate_nome(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Nome é obrigatório")
        return value

    def validate_cor(self, value):
        return value.upper()


class DocumentoSerializer(serializers.ModelSerializer):
    categoria_nome = serializers.CharField(source='categoria.nome', read_only=True, default=None)
    categoria_cor = serializers.CharField(source='categoria.cor', read_only=True, default=None)
    obra_nome = serializers.CharField(source='obra.nome', read_only=True, default=None)
    enviado_por_nome = serializers.SerializerMethodField()
    url = serializers.SerializerMethodField()

    class Meta:
        model = Documento
        fields = ['id', 'nome', 'descricao', 'tipo_arquivo', 'tamanho', 'url', 'categoria', 'categoria_nome',
                  'categoria_cor', 'obra', 'obra_nome', 'enviado_por', 'enviado_por_nome', 'created_at', 'updated_at']
        read_only_fields = ['id', 'tipo_arquivo', 'tamanho', 'url', 'enviado_por', 'created_at', 'updated_at']

    def get_enviado_por_nome(self, obj):
        return str(obj.enviado_por) if obj.enviado_por else None

    def get_url(self, obj):
        if not obj.arquivo:
            return None
        request = self.context.get('request')
        url = obj.arquivo.url
        return request.build_absolute_uri(url) if request else url


class DocumentoUploadSerializer(serializers.Serializer):
    files = serializers.ListField(child=serializers.FileField(), allow_empty=False)
    descricao = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    categoria = serializers.PrimaryKeyRelatedField(queryset=DocumentoCategoria.objects.all(), required=False, allow_null=True)
    obra = serializers.PrimaryKeyRelatedField(queryset=Obra.objects.all(), required=False, allow_null=True)
