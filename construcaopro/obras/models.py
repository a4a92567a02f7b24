from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Obra(models.Model):
    """Construction project"""
    STATUS_CHOICES = [
        ('ATIVA', 'Ativa'),
        ('PAUSADA', 'Pausada'),
        ('FINALIZADA', 'Finalizada'),
        ('VENDIDO', 'Vendido'),
        ('TERRENO', 'Terreno'),
    ]

    nome = models.CharField(max_length=200)
    endereco = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='ATIVA')
    orcamento = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    valor_terreno = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    valor_burocracia = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    valor_construcao = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    # Only meaningful once the obra is VENDIDO
    valor_venda = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.nome

    class Meta:
        db_table = 'obras'
        ordering = ['-created_at']


class Almoxarifado(models.Model):
    """Warehouse / stockroom of an obra"""
    nome = models.CharField(max_length=200)
    obra = models.ForeignKey(Obra, on_delete=models.CASCADE, null=True, blank=True, related_name='almoxarifados')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        if self.obra_id:
            return f"{self.nome} ({self.obra.nome})"
        return self.nome

    class Meta:
        db_table = 'almoxarifados'
        ordering = ['nome']


class UsuarioObra(models.Model):
    """Link between a user and an obra they can access"""
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='obras_vinculadas')
    obra = models.ForeignKey(Obra, on_delete=models.CASCADE, related_name='usuarios_vinculados')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.usuario} -> {self.obra}"

    class Meta:
        db_table = 'usuario_obras'
        unique_together = [['usuario', 'obra']]
