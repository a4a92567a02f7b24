from decimal import Decimal

from rest_framework import serializers

from .models import FinanceiroConta, FinanceiroMovimentacao


class FinanceiroContaSerializer(serializers.ModelSerializer):
    valor_total = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)

    class Meta:
        model = FinanceiroConta
        fields = ['id', 'banco', 'agencia', 'numero_conta', 'valor_caixa', 'valor_aplicado', 'valor_total',
                  'created_at', 'updated_at']
        read_only_fields = ['id', 'valor_caixa', 'valor_aplicado', 'created_at', 'updated_at']

    def validate_banco(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Nome do banco deve ter pelo menos 2 caracteres")
        return value


class ContaCreateSerializer(FinanceiroContaSerializer):
    valor_inicial = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'),
                                             required=False, default=Decimal('0'), write_only=True)
    subconta = serializers.ChoiceField(choices=FinanceiroMovimentacao.SUBCONTA_CHOICES, required=False,
                                       default='CAIXA', write_only=True)

    class Meta(FinanceiroContaSerializer.Meta):
        fields = FinanceiroContaSerializer.Meta.fields + ['valor_inicial', 'subconta']


class FinanceiroMovimentacaoSerializer(serializers.ModelSerializer):
    destino_nome = serializers.SerializerMethodField()
    usuario_nome = serializers.SerializerMethodField()

    class Meta:
        model = FinanceiroMovimentacao
        fields = ['id', 'conta', 'tipo', 'subconta', 'motivo', 'valor', 'data', 'transferencia_destino',
                  'destino_nome', 'usuario', 'usuario_nome', 'created_at']
        read_only_fields = fields

    def get_destino_nome(self, obj):
        if not obj.transferencia_destino:
            return None
        if obj.is_switch:
            return 'Aplicações' if obj.subconta == 'CAIXA' else 'Em Caixa'
        contas = self.context.get('contas')
        if contas is not None:
            conta = contas.get(obj.transferencia_destino)
        else:
            conta = FinanceiroConta.objects.filter(pk=obj.transferencia_destino).first()
        return conta.banco if conta else None

    def get_usuario_nome(self, obj):
        return str(obj.usuario) if obj.usuario else None


class MovimentacaoComContaSerializer(FinanceiroMovimentacaoSerializer):
    conta = FinanceiroContaSerializer(read_only=True)


class MovimentacaoInputSerializer(serializers.Serializer):
    tipo = serializers.ChoiceField(choices=FinanceiroMovimentacao.TIPO_CHOICES)
    subconta = serializers.ChoiceField(choices=FinanceiroMovimentacao.SUBCONTA_CHOICES, default='CAIXA')
    motivo = serializers.CharField(max_length=255)
    valor = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))
    data = serializers.DateField(required=False, allow_null=True)
    transferencia_destino = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=20)

    def validate(self, attrs):
        if attrs['tipo'] == 'TRANSFERENCIA' and not attrs.get('transferencia_destino'):
            raise serializers.ValidationError({'transferencia_destino': 'Destino é obrigatório para transferências'})
        return attrs


class MetaSerializer(serializers.Serializer):
    meta = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'))
