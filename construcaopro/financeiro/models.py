from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class FinanceiroConta(models.Model):
    """Bank account split into cash (caixa) and invested (aplicado) balances"""
    banco = models.CharField(max_length=100)
    agencia = models.CharField(max_length=20, blank=True, default='')
    numero_conta = models.CharField(max_length=30, blank=True, default='')
    valor_caixa = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    valor_aplicado = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        if self.agencia or self.numero_conta:
            return f"{self.banco} ({self.agencia}/{self.numero_conta})"
        return self.banco

    @property
    def valor_total(self):
        return self.valor_caixa + self.valor_aplicado

    class Meta:
        db_table = 'financeiro_contas'
        ordering = ['banco', 'id']


class FinanceiroMovimentacao(models.Model):
    """Cash movement of an account; balances are the fold of these rows"""
    TIPO_CHOICES = [
        ('ENTRADA', 'Entrada'),
        ('SAIDA', 'Saída'),
        ('TRANSFERENCIA', 'Transferência'),
    ]

    SUBCONTA_CHOICES = [
        ('CAIXA', 'Em Caixa'),
        ('APLICADO', 'Aplicações'),
    ]

    # Destination marker for moves between the two subcontas of the same account
    SWITCH = 'SWITCH'

    conta = models.ForeignKey(FinanceiroConta, on_delete=models.CASCADE, related_name='movimentacoes')
    tipo = models.CharField(max_length=20, choices=TIPO_CHOICES)
    subconta = models.CharField(max_length=10, choices=SUBCONTA_CHOICES, default='CAIXA')
    motivo = models.CharField(max_length=255)
    valor = models.DecimalField(max_digits=14, decimal_places=2)
    data = models.DateField(default=timezone.localdate)
    # 'SWITCH' or the id of the destination account
    transferencia_destino = models.CharField(max_length=20, blank=True, null=True)
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='movimentacoes_financeiras')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_tipo_display()} {self.valor} - {self.motivo}"

    @property
    def is_switch(self):
        return self.tipo == 'TRANSFERENCIA' and self.transferencia_destino == self.SWITCH

    class Meta:
        db_table = 'financeiro_movimentacoes'
        ordering = ['-data', '-created_at']
        constraints = [
            models.CheckConstraint(condition=models.Q(valor__gt=0), name='financeiro_valor_positivo'),
        ]
