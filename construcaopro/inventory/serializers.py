from decimal import Decimal

from rest_framework import serializers

from construcaopro.catalog.models import Material
from construcaopro.obras.models import Almoxarifado
from construcaopro.parties.models import Fornecedor
from construcaopro.fiscal.models import NotaFiscal
from .models import Estoque, Movimentacao


class EstoqueSerializer(serializers.ModelSerializer):
    material_nome = serializers.CharField(source='material.nome', read_only=True)
    material_codigo = serializers.CharField(source='material.codigo', read_only=True)
    unidade = serializers.CharField(source='material.unidade', read_only=True)
    estoque_minimo = serializers.DecimalField(source='material.estoque_minimo', max_digits=12, decimal_places=3, read_only=True)
    preco_unitario = serializers.DecimalField(source='material.preco_unitario', max_digits=12, decimal_places=2, read_only=True)
    categoria_nome = serializers.CharField(source='material.categoria.nome', read_only=True)
    almoxarifado_nome = serializers.CharField(source='almoxarifado.nome', read_only=True)
    obra = serializers.IntegerField(source='almoxarifado.obra_id', read_only=True)
    obra_nome = serializers.CharField(source='almoxarifado.obra.nome', read_only=True, default=None)
    valor_total = serializers.SerializerMethodField()
    estoque_baixo = serializers.BooleanField(read_only=True)

    class Meta:
        model = Estoque
        fields = ['id', 'almoxarifado', 'almoxarifado_nome', 'obra', 'obra_nome', 'material', 'material_nome',
                  'material_codigo', 'categoria_nome', 'unidade', 'quantidade', 'estoque_minimo', 'preco_unitario',
                  'valor_total', 'estoque_baixo', 'updated_at']
        read_only_fields = fields

    def get_valor_total(self, obj):
        return str((obj.quantidade * obj.material.preco_unitario).quantize(Decimal('0.01')))


class MovimentacaoSerializer(serializers.ModelSerializer):
    material_nome = serializers.CharField(source='material.nome', read_only=True)
    material_codigo = serializers.CharField(source='material.codigo', read_only=True)
    almoxarifado_nome = serializers.CharField(source='almoxarifado.nome', read_only=True)
    obra = serializers.IntegerField(source='almoxarifado.obra_id', read_only=True)
    obra_nome = serializers.CharField(source='almoxarifado.obra.nome', read_only=True, default=None)
    almoxarifado_destino_nome = serializers.CharField(source='almoxarifado_destino.nome', read_only=True, default=None)
    fornecedor_nome = serializers.CharField(source='fornecedor.nome', read_only=True, default=None)
    usuario_nome = serializers.SerializerMethodField()
    valor_total = serializers.SerializerMethodField()

    class Meta:
        model = Movimentacao
        fields = ['id', 'tipo', 'material', 'material_nome', 'material_codigo', 'almoxarifado', 'almoxarifado_nome',
                  'obra', 'obra_nome', 'almoxarifado_destino', 'almoxarifado_destino_nome', 'quantidade',
                  'preco_unitario', 'valor_total', 'unidade', 'forma_pagamento', 'fornecedor', 'fornecedor_nome',
                  'nota_fiscal', 'observacao', 'status_transferencia', 'usuario', 'usuario_nome',
                  'aprovado_nivel_1_por', 'aprovado_nivel_1_em', 'aprovado_por', 'aprovado_em', 'created_at']
        read_only_fields = fields

    def get_usuario_nome(self, obj):
        return str(obj.usuario) if obj.usuario else None

    def get_valor_total(self, obj):
        return str(obj.valor_total.quantize(Decimal('0.01')))


class MovimentacaoBaseInputSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.select_related('categoria'))
    almoxarifado = serializers.PrimaryKeyRelatedField(queryset=Almoxarifado.objects.all())
    quantidade = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=Decimal('0.001'))
    observacao = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    unidade = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=10)


class EntradaInputSerializer(MovimentacaoBaseInputSerializer):
    preco_unitario = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0'))
    fornecedor = serializers.PrimaryKeyRelatedField(queryset=Fornecedor.objects.all(), required=False, allow_null=True)
    nota_fiscal = serializers.PrimaryKeyRelatedField(queryset=NotaFiscal.objects.all(), required=False, allow_null=True)
    forma_pagamento = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=50)


class SaidaInputSerializer(MovimentacaoBaseInputSerializer):
    preco_unitario = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, allow_null=True)


class TransferenciaInputSerializer(MovimentacaoBaseInputSerializer):
    almoxarifado_destino = serializers.PrimaryKeyRelatedField(queryset=Almoxarifado.objects.all())

    def validate(self, attrs):
        if attrs['almoxarifado'].pk == attrs['almoxarifado_destino'].pk:
            raise serializers.ValidationError({'almoxarifado_destino': 'Origem e destino devem ser diferentes'})
        return attrs
