from django.contrib import admin
from .models import Obra, Almoxarifado, UsuarioObra


class AlmoxarifadoInline(admin.TabularInline):
    model = Almoxarifado
    extra = 0


@admin.register(Obra)
class ObraAdmin(admin.ModelAdmin):
    list_display = ['nome', 'status', 'orcamento', 'valor_terreno', 'valor_venda', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['nome', 'endereco']
    ordering = ['-created_at']
    inlines = [AlmoxarifadoInline]


@admin.register(Almoxarifado)
class AlmoxarifadoAdmin(admin.ModelAdmin):
    list_display = ['nome', 'obra', 'created_at']
    list_filter = ['obra']
    search_fields = ['nome', 'obra__nome']
    ordering = ['nome']


@admin.register(UsuarioObra)
class UsuarioObraAdmin(admin.ModelAdmin):
    list_display = ['usuario', 'obra', 'created_at']
    list_filter = ['obra']
    search_fields = ['usuario__email', 'obra__nome']
