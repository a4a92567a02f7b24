import re

from django.db import models


def normalize_cnpj(value):
    """Keep only the digits of a CNPJ; empty values become None"""
    if not value:
        return None
    digits = re.sub(r'\D', '', str(value))
    return digits or None


class Fornecedor(models.Model):
    """Suppliers"""
    nome = models.CharField(max_length=200)
    # Stored as 14 digits, unique when present
    cnpj = models.CharField(max_length=14, unique=True, blank=True, null=True)
    telefone = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    endereco = models.TextField(blank=True, null=True)
    observacao = models.TextField(blank=True, null=True)
    ativo = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.nome

    def save(self, *args, **kwargs):
        self.cnpj = normalize_cnpj(self.cnpj)
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'fornecedores'
        ordering = ['nome']
