from django.contrib import admin
from .models import Estoque, Movimentacao


@admin.register(Estoque)
class EstoqueAdmin(admin.ModelAdmin):
    list_display = ['material', 'almoxarifado', 'quantidade', 'updated_at']
    list_filter = ['almoxarifado__obra', 'almoxarifado']
    search_fields = ['material__nome', 'material__codigo', 'almoxarifado__nome']
    # Stock only changes through movements
    readonly_fields = ['quantidade', 'created_at', 'updated_at']


@admin.register(Movimentacao)
class MovimentacaoAdmin(admin.ModelAdmin):
    list_display = ['tipo', 'material', 'quantidade', 'almoxarifado', 'almoxarifado_destino', 'status_transferencia', 'usuario', 'created_at']
    list_filter = ['tipo', 'status_transferencia', 'created_at']
    search_fields = ['material__nome', 'material__codigo', 'observacao']
    ordering = ['-created_at']
    readonly_fields = ['created_at']
