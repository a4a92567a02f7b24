from django.contrib import admin
from .models import Documento, DocumentoCategoria


@admin.register(DocumentoCategoria)
class DocumentoCategoriaAdmin(admin.ModelAdmin):
    list_display = ('nome', 'cor', 'created_at')
    search_fields = ('nome',)


@admin.register(Documento)
class DocumentoAdmin(admin.ModelAdmin):
    list_display = ('nome', 'tipo_arquivo', 'tamanho', 'categoria', 'obra', 'enviado_por', 'created_at')
    list_filter = ('categoria', 'obra')
    search_fields = ('nome', 'descricao', 'tipo_arquivo')
    readonly_fields = ('tipo_arquivo', 'tamanho', 'created_at', 'updated_at')
