from django.contrib import admin
from .models import FinanceiroConta, FinanceiroMovimentacao


class FinanceiroMovimentacaoInline(admin.TabularInline):
    model = FinanceiroMovimentacao
    extra = 0
    fields = ('data', 'tipo', 'subconta', 'motivo', 'valor', 'transferencia_destino')
    readonly_fields = fields
    can_delete = False


@admin.register(FinanceiroConta)
class FinanceiroContaAdmin(admin.ModelAdmin):
    list_display = ('banco', 'agencia', 'numero_conta', 'valor_caixa', 'valor_aplicado', 'updated_at')
    search_fields = ('banco', 'agencia', 'numero_conta')
    # Balances only change through movements
    readonly_fields = ('valor_caixa', 'valor_aplicado', 'created_at', 'updated_at')
    inlines = [FinanceiroMovimentacaoInline]


@admin.register(FinanceiroMovimentacao)
class FinanceiroMovimentacaoAdmin(admin.ModelAdmin):
    list_display = ('data', 'conta', 'tipo', 'subconta', 'motivo', 'valor', 'usuario')
    list_filter = ('tipo', 'subconta', 'data')
    search_fields = ('motivo', 'conta__banco')
    readonly_fields = ('created_at',)

    def has_change_permission(self, request, obj=None):
        return False
