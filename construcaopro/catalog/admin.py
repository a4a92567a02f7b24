from django.contrib import admin
from .models import Categoria, Material


@admin.register(Categoria)
class CategoriaAdmin(admin.ModelAdmin):
    list_display = ['nome', 'unidade', 'created_at']
    list_filter = ['unidade']
    search_fields = ['nome']
    ordering = ['nome']


@admin.register(Material)
class MaterialAdmin(admin.ModelAdmin):
    list_display = ['nome', 'codigo', 'codigo_barras', 'categoria', 'estoque_minimo', 'preco_unitario']
    list_filter = ['categoria']
    search_fields = ['nome', 'codigo', 'codigo_barras']
    ordering = ['nome']
