from decimal import Decimal

from django.db import models

from construcaopro.catalog.models import Material
from construcaopro.parties.models import Fornecedor


class NotaFiscal(models.Model):
    """Electronic invoice (NF-e) received from a supplier"""
    STATUS_CHOICES = [
        ('PENDENTE', 'Pendente'),
        ('PROCESSADA', 'Processada'),
        ('VINCULADA', 'Vinculada'),
        ('REJEITADA', 'Rejeitada'),
    ]

    numero = models.CharField(max_length=20)
    serie = models.CharField(max_length=5, blank=True, default='')
    chave_acesso = models.CharField(max_length=44, unique=True)
    cnpj_emitente = models.CharField(max_length=14)
    nome_emitente = models.CharField(max_length=255, blank=True, default='')
    cnpj_destinatario = models.CharField(max_length=14, blank=True, null=True)
    data_emissao = models.DateTimeField()
    valor_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDENTE')
    xml = models.TextField(blank=True, null=True)
    fornecedor = models.ForeignKey(Fornecedor, on_delete=models.SET_NULL, null=True, blank=True, related_name='notas_fiscais')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"NF {self.numero}/{self.serie}" if self.serie else f"NF {self.numero}"

    class Meta:
        db_table = 'notas_fiscais'
        ordering = ['-created_at']


class ItemNF(models.Model):
    """Line item of a nota fiscal, optionally linked to a catalog material"""
    nota_fiscal = models.ForeignKey(NotaFiscal, on_delete=models.CASCADE, related_name='itens')
    codigo = models.CharField(max_length=60, blank=True, default='')
    codigo_barras = models.CharField(max_length=60, blank=True, default='')
    descricao = models.CharField(max_length=255)
    quantidade = models.DecimalField(max_digits=14, decimal_places=4)
    unidade = models.CharField(max_length=10)
    valor_unitario = models.DecimalField(max_digits=14, decimal_places=4)
    valor_total = models.DecimalField(max_digits=14, decimal_places=2)
    ncm = models.CharField(max_length=10, blank=True, null=True)
    cfop = models.CharField(max_length=10, blank=True, null=True)
    material = models.ForeignKey(Material, on_delete=models.SET_NULL, null=True, blank=True, related_name='itens_nf')

    def __str__(self):
        return f"{self.descricao} x {self.quantidade}"

    class Meta:
        db_table = 'itens_nf'
        ordering = ['id']
