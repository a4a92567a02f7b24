from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal


class Categoria(models.Model):
    """Material categories, each with its default unit of measure"""
    UNIDADE_CHOICES = [
        ('UN', 'Unidade'),
        ('KG', 'Quilograma'),
        ('M', 'Metro'),
        ('M2', 'Metro quadrado'),
        ('M3', 'Metro cúbico'),
        ('L', 'Litro'),
        ('CX', 'Caixa'),
        ('PC', 'Peça'),
        ('SC', 'Saco'),
        ('TB', 'Tubo'),
        ('GL', 'Galão'),
        ('FD', 'Fardo'),
        ('RL', 'Rolo'),
        ('PR', 'Par'),
    ]

    nome = models.CharField(max_length=200, unique=True)
    unidade = models.CharField(max_length=5, choices=UNIDADE_CHOICES, default='UN')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.nome

    class Meta:
        db_table = 'categorias'
        ordering = ['nome']


class Material(models.Model):
    """Catalog item"""
    nome = models.CharField(max_length=200, db_index=True)
    codigo = models.CharField(max_length=100, unique=True, db_index=True)
    codigo_barras = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    descricao = models.TextField(blank=True, null=True)
    # PROTECT so a category with materials cannot be deleted
    categoria = models.ForeignKey(Categoria, on_delete=models.PROTECT, related_name='materiais')
    estoque_minimo = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'), validators=[MinValueValidator(Decimal('0'))])
    preco_unitario = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.nome} ({self.codigo})"

    @property
    def unidade(self):
        return self.categoria.unidade if self.categoria_id else 'UN'

    class Meta:
        db_table = 'materiais'
        ordering = ['nome']
