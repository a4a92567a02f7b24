from django.contrib import admin
from .models import Fornecedor


@admin.register(Fornecedor)
class FornecedorAdmin(admin.ModelAdmin):
    list_display = ['nome', 'cnpj', 'telefone', 'email', 'ativo', 'created_at']
    list_filter = ['ativo']
    search_fields = ['nome', 'cnpj', 'email', 'telefone']
    ordering = ['nome']
