import os

from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models
from django.utils import timezone

cor_validator = RegexValidator(r'^#[0-9A-Fa-f]{6}$', 'Cor deve estar no formato #RRGGBB')


def documento_upload_path(instance, filename):
    """documentos/<obra id or 'geral'>/<YYYY>/<MM>/<filename>"""
    pasta = str(instance.obra_id) if instance.obra_id else 'geral'
    agora = timezone.now()
    return os.path.join('documentos', pasta, agora.strftime('%Y'), agora.strftime('%m'), filename)


class DocumentoCategoria(models.Model):
    nome = models.CharField(max_length=100, unique=True)
    cor = models.CharField(max_length=7, default='#007AFF', validators=[cor_validator])
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.nome

    class Meta:
        db_table = 'documento_categorias'
        ordering = ['nome']


class Documento(models.Model):
    nome = models.CharField(max_length=255)
    descricao = models.TextField(blank=True, null=True)
    arquivo = models.FileField(upload_to=documento_upload_path, max_length=500)
    tipo_arquivo = models.CharField(max_length=100, blank=True, default='')
    tamanho = models.PositiveBigIntegerField(default=0)
    categoria = models.ForeignKey(DocumentoCategoria, on_delete=models.SET_NULL, null=True, blank=True, related_name='documentos')
    obra = models.ForeignKey('obras.Obra', on_delete=models.SET_NULL, null=True, blank=True, related_name='documentos')
    enviado_por = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='documentos_enviados')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.nome

    class Meta:
        db_table = 'documentos'
        ordering = ['-created_at']
