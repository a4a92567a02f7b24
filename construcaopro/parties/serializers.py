from rest_framework import serializers
from .models import Fornecedor, normalize_cnpj


class FornecedorSerializer(serializers.ModelSerializer):
    # Accepts formatted input; stored as 14 digits
    cnpj = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=20)

    class Meta:
        model = Fornecedor
        fields = ['id', 'nome', 'cnpj', 'telefone', 'email', 'endereco', 'observacao', 'ativo',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_nome(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Nome deve ter pelo menos 2 caracteres")
        return value

    def validate_cnpj(self, value):
        cnpj = normalize_cnpj(value)
        if cnpj is None:
            return None
        if len(cnpj) != 14:
            raise serializers.ValidationError("CNPJ deve ter 14 dígitos")
        queryset = Fornecedor.objects.filter(cnpj=cnpj)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("Já existe um fornecedor com este CNPJ")
        return cnpj
