from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Application user; logs in with e-mail and carries one role"""
    ROLE_CHOICES = [
        ('ADMIN', 'Administrador'),
        ('GESTOR', 'Gestor'),
        ('ALMOXARIFE', 'Almoxarife'),
        ('VISUALIZADOR', 'Visualizador'),
    ]

    email = models.EmailField(unique=True)
    nome = models.CharField(max_length=200, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='VISUALIZADOR')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    def __str__(self):
        return self.nome or self.email

    class Meta:
        db_table = 'usuarios'


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACAO_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('movimentacao_entrada', 'Entrada de Material'),
        ('movimentacao_saida', 'Saída de Material'),
        ('transferencia_criar', 'Transferência Solicitada'),
        ('transferencia_aprovar', 'Transferência Aprovada'),
        ('transferencia_rejeitar', 'Transferência Rejeitada'),
        ('estoque_zerar', 'Estoque Zerado'),
        ('nf_importar', 'NF-e Importada'),
        ('nf_vincular', 'NF-e Vinculada'),
        ('nf_rejeitar', 'NF-e Rejeitada'),
        ('financeiro_movimentacao', 'Movimentação Financeira'),
        ('financeiro_estorno', 'Estorno Financeiro'),
        ('documento_upload', 'Documento Enviado'),
    ]

    usuario = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    acao = models.CharField(max_length=50, choices=ACAO_CHOICES)
    entidade = models.CharField(max_length=100)
    entidade_id = models.CharField(max_length=100)
    entidade_nome = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., material name, NF number)")
    payload = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['acao'], name='idx_audit_acao'),
            models.Index(fields=['entidade'], name='idx_audit_entidade'),
        ]
