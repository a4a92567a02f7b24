from django.contrib import admin
from .models import NotaFiscal, ItemNF


class ItemNFInline(admin.TabularInline):
    model = ItemNF
    extra = 0
    fields = ['codigo', 'descricao', 'quantidade', 'unidade', 'valor_unitario', 'valor_total', 'material']


@admin.register(NotaFiscal)
class NotaFiscalAdmin(admin.ModelAdmin):
    list_display = ['numero', 'serie', 'nome_emitente', 'cnpj_emitente', 'data_emissao', 'valor_total', 'status']
    list_filter = ['status', 'data_emissao']
    search_fields = ['numero', 'chave_acesso', 'cnpj_emitente', 'nome_emitente']
    ordering = ['-created_at']
    readonly_fields = ['xml', 'created_at', 'updated_at']
    inlines = [ItemNFInline]
