from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from construcaopro.parties.models import normalize_cnpj
from .models import NotaFiscal, ItemNF


class ItemNFSerializer(serializers.ModelSerializer):
    material_nome = serializers.CharField(source='material.nome', read_only=True, default=None)

    class Meta:
        model = ItemNF
        fields = ['id', 'codigo', 'codigo_barras', 'descricao', 'quantidade', 'unidade', 'valor_unitario',
                  'valor_total', 'ncm', 'cfop', 'material', 'material_nome']
        extra_kwargs = {
            'valor_total': {'required': False},
            'quantidade': {'min_value': Decimal('0.0001')},
            'valor_unitario': {'min_value': Decimal('0')},
        }


class ItemNFMaterialSerializer(serializers.ModelSerializer):
    """Only the material link of an item can change after import"""
    class Meta:
        model = ItemNF
        fields = ['material']


class NotaFiscalListSerializer(serializers.ModelSerializer):
    fornecedor_nome = serializers.CharField(source='fornecedor.nome', read_only=True, default=None)
    itens_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = NotaFiscal
        fields = ['id', 'numero', 'serie', 'chave_acesso', 'cnpj_emitente', 'nome_emitente', 'cnpj_destinatario',
                  'data_emissao', 'valor_total', 'status', 'fornecedor', 'fornecedor_nome', 'itens_count',
                  'created_at']


class NotaFiscalSerializer(serializers.ModelSerializer):
    fornecedor_nome = serializers.CharField(source='fornecedor.nome', read_only=True, default=None)
    itens = ItemNFSerializer(many=True, required=False)
    cnpj_emitente = serializers.CharField(max_length=20)
    cnpj_destinatario = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)

    class Meta:
        model = NotaFiscal
        fields = ['id', 'numero', 'serie', 'chave_acesso', 'cnpj_emitente', 'nome_emitente', 'cnpj_destinatario',
                  'data_emissao', 'valor_total', 'status', 'fornecedor', 'fornecedor_nome', 'itens',
                  'created_at', 'updated_at']
        read_only_fields = ['status', 'created_at', 'updated_at']

    def validate_chave_acesso(self, value):
        value = ''.join(ch for ch in value if ch.isdigit())
        if len(value) != 44:
            raise serializers.ValidationError("Chave de acesso deve ter 44 dígitos")
        return value

    def validate_cnpj_emitente(self, value):
        cnpj = normalize_cnpj(value)
        if not cnpj or len(cnpj) != 14:
            raise serializers.ValidationError("CNPJ do emitente deve ter 14 dígitos")
        return cnpj

    def validate_cnpj_destinatario(self, value):
        return normalize_cnpj(value)

    def create(self, validated_data):
        itens_data = validated_data.pop('itens', [])
        # A note typed in with its items is ready to be linked to stock
        validated_data['status'] = 'PROCESSADA' if itens_data else 'PENDENTE'
        with transaction.atomic():
            nota = NotaFiscal.objects.create(**validated_data)
            for item_data in itens_data:
                if item_data.get('valor_total') is None:
                    item_data['valor_total'] = (item_data['quantidade'] * item_data['valor_unitario']).quantize(Decimal('0.01'))
                ItemNF.objects.create(nota_fiscal=nota, **item_data)
        return nota
