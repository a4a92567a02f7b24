from django.conf import settings
from django.db import models
from decimal import Decimal
from construcaopro.catalog.models import Material
from construcaopro.fiscal.models import NotaFiscal
from construcaopro.obras.models import Almoxarifado
from construcaopro.parties.models import Fornecedor


class Estoque(models.Model):
    """Stock level of a material in an almoxarifado"""
    almoxarifado = models.ForeignKey(Almoxarifado, on_delete=models.CASCADE, related_name='estoques')
    material = models.ForeignKey(Material, on_delete=models.CASCADE, related_name='estoques')
    quantidade = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0.000'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.material.nome} @ {self.almoxarifado.nome}: {self.quantidade}"

    @property
    def estoque_baixo(self):
        minimo = self.material.estoque_minimo
        return minimo > 0 and self.quantidade <= minimo

    class Meta:
        db_table = 'estoques'
        unique_together = [['almoxarifado', 'material']]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantidade__gte=0), name='estoque_quantidade_nao_negativa'),
        ]
        indexes = [
            models.Index(fields=['material'], name='idx_estoque_material'),
        ]


class Movimentacao(models.Model):
    """Stock movement: entry, exit or transfer between almoxarifados"""
    TIPO_CHOICES = [
        ('ENTRADA', 'Entrada'),
        ('SAIDA', 'Saída'),
        ('TRANSFERENCIA', 'Transferência'),
    ]

    STATUS_TRANSFERENCIA_CHOICES = [
        ('PENDENTE', 'Pendente'),
        ('APROVADA_NIVEL_1', 'Aprovada Nível 1'),
        ('APROVADA', 'Aprovada'),
        ('REJEITADA', 'Rejeitada'),
    ]

    tipo = models.CharField(max_length=20, choices=TIPO_CHOICES, db_index=True)
    # PROTECT keeps the movement history of a material intact
    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name='movimentacoes')
    almoxarifado = models.ForeignKey(Almoxarifado, on_delete=models.CASCADE, related_name='movimentacoes')
    almoxarifado_destino = models.ForeignKey(Almoxarifado, on_delete=models.CASCADE, null=True, blank=True, related_name='movimentacoes_recebidas')
    quantidade = models.DecimalField(max_digits=14, decimal_places=3)
    preco_unitario = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    unidade = models.CharField(max_length=10, blank=True, null=True)
    forma_pagamento = models.CharField(max_length=50, blank=True, null=True)
    fornecedor = models.ForeignKey(Fornecedor, on_delete=models.SET_NULL, null=True, blank=True, related_name='movimentacoes')
    nota_fiscal = models.ForeignKey(NotaFiscal, on_delete=models.SET_NULL, null=True, blank=True, related_name='movimentacoes')
    observacao = models.TextField(blank=True, null=True)
    status_transferencia = models.CharField(max_length=20, choices=STATUS_TRANSFERENCIA_CHOICES, null=True, blank=True, db_index=True)
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='movimentacoes')
    aprovado_nivel_1_por = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='transferencias_aprovadas_nivel_1')
    aprovado_nivel_1_em = models.DateTimeField(null=True, blank=True)
    aprovado_por = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='transferencias_aprovadas')
    aprovado_em = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.get_tipo_display()} {self.quantidade} {self.material.nome}"

    @property
    def valor_total(self):
        return (self.quantidade or Decimal('0')) * (self.preco_unitario or Decimal('0'))

    class Meta:
        db_table = 'movimentacoes'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantidade__gt=0), name='movimentacao_quantidade_positiva'),
        ]
        indexes = [
            models.Index(fields=['tipo', '-created_at'], name='idx_mov_tipo_created'),
        ]
