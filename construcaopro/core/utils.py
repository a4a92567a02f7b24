"""Utility functions for audit logging"""
import logging

from .models import AuditLog

logger = logging.getLogger('construcaopro.core')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, acao=None, entidade=None, entidade_id=None,
                     payload=None, usuario=None, entidade_nome=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if usuario is provided
        acao: Action type (create, update, delete, movimentacao_entrada, etc.)
        entidade: Name of the model being acted upon
        entidade_id: ID of the object (stored as string)
        payload: Dictionary with the relevant data of the operation
        usuario: Optional user override (defaults to request.user)
        entidade_nome: Human-readable name of the object (e.g., material name, NF number)
    """
    try:
        audit_user = usuario
        if audit_user is None and request is not None and hasattr(request, 'user'):
            audit_user = request.user

        if not acao or not entidade or entidade_id is None:
            logger.warning(f"Audit log creation skipped: missing required fields (acao={acao}, entidade={entidade}, entidade_id={entidade_id})")
            return None

        return AuditLog.objects.create(
            usuario=audit_user if audit_user and audit_user.is_authenticated else None,
            acao=acao,
            entidade=entidade,
            entidade_id=str(entidade_id),
            entidade_nome=entidade_nome,
            payload=payload or {},
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Never fail the main operation because of the audit trail
        logger.error(f"Failed to create audit log: {str(e)}")
        return None

