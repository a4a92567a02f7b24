"""
Role helpers shared by every app.

Roles are ordered VISUALIZADOR < ALMOXARIFE < GESTOR < ADMIN; superusers are
always treated as ADMIN. Views call these inline and answer 403 on failure.
"""

ROLE_LEVELS = {
    'VISUALIZADOR': 0,
    'ALMOXARIFE': 1,
    'GESTOR': 2,
    'ADMIN': 3,
}


def get_role(user):
    """Return the effective role of a user, or None for anonymous users"""
    if not user or not user.is_authenticated:
        return None
    if user.is_superuser:
        return 'ADMIN'
    return getattr(user, 'role', None) or 'VISUALIZADOR'


def _has_level(user, role):
    current = get_role(user)
    if current is None:
        return False
    return ROLE_LEVELS.get(current, 0) >= ROLE_LEVELS[role]


def is_admin(user):
    return _has_level(user, 'ADMIN')


def is_gestor_or_above(user):
    return _has_level(user, 'GESTOR')


def is_almoxarife_or_above(user):
    return _has_level(user, 'ALMOXARIFE')


def get_accessible_obra_ids(user):
    """
    Obra ids visible to the user.
    Returns None when the user can see every obra (ADMIN).
    """
    if is_admin(user):
        return None
    if not user or not user.is_authenticated:
        return []
    from construcaopro.obras.models import UsuarioObra
    return list(UsuarioObra.objects.filter(usuario=user).values_list('obra_id', flat=True))


def has_obra_access(user, obra_id):
    """Check if the user may see the given obra"""
    if obra_id is None:
        return is_admin(user)
    obra_ids = get_accessible_obra_ids(user)
    if obra_ids is None:
        return True
    return int(obra_id) in obra_ids


def filter_by_obra_access(queryset, user, field='obra_id'):
    """Restrict a queryset to rows whose obra the user can see"""
    obra_ids = get_accessible_obra_ids(user)
    if obra_ids is None:
        return queryset
    return queryset.filter(**{f'{field}__in': obra_ids})
