from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Setting, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'nome', 'role', 'is_active', 'is_superuser', 'date_joined']
    list_filter = ['role', 'is_active', 'is_superuser', 'date_joined']
    search_fields = ['email', 'username', 'nome']
    ordering = ['email']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Perfil', {'fields': ('nome', 'role')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'username', 'nome', 'role', 'password1', 'password2'),
        }),
    )


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'description']
    ordering = ['key']
    readonly_fields = ['updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['usuario', 'acao', 'entidade', 'entidade_id', 'ip_address', 'created_at']
    list_filter = ['acao', 'entidade', 'created_at']
    search_fields = ['usuario__email', 'entidade', 'entidade_id', 'entidade_nome']
    ordering = ['-created_at']
    readonly_fields = ['usuario', 'acao', 'entidade', 'entidade_id', 'entidade_nome', 'payload', 'ip_address', 'created_at']
