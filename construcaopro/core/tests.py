"""
Test suite for core module
Tests: authentication, users, obra access, settings, audit logs, cache keys
"""
from django.test import TestCase
from rest_framework import status

from construcaopro.core.cache_signals import access_cache_key
from construcaopro.core.models import AuditLog, Setting
from construcaopro.core.permissions import (
    get_role, is_admin, is_gestor_or_above, is_almoxarife_or_above, has_obra_access, get_accessible_obra_ids
)
from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.core.utils import create_audit_log


class AuthenticationTests(TestCase):
    """Test JWT login, refresh and /auth/me/"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(email='gestor@test.com', role='GESTOR', password='testpass123')

    def test_login_with_email(self):
        """Login returns tokens and the user payload"""
        response = self.client.post('/api/v1/auth/login/', {'email': 'gestor@test.com', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'GESTOR')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'email': 'gestor@test.com', 'password': 'errada'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        login = self.client.post('/api/v1/auth/login/', {'email': 'gestor@test.com', 'password': 'testpass123'}, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_returns_role_flags(self):
        obra = TestDataFactory.create_obra()
        TestDataFactory.link_user_obra(self.user, obra)
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'GESTOR')
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['is_gestor_or_above'])
        self.assertTrue(response.data['is_almoxarife_or_above'])
        self.assertEqual(response.data['obras_acessiveis'], [obra.id])


class RoleHelperTests(TestCase):
    """Test the role ladder and obra access rules"""

    def test_role_ladder(self):
        admin = TestDataFactory.create_user(role='ADMIN')
        almoxarife = TestDataFactory.create_user(role='ALMOXARIFE')
        visualizador = TestDataFactory.create_user()

        self.assertTrue(is_admin(admin))
        self.assertTrue(is_gestor_or_above(admin))
        self.assertFalse(is_gestor_or_above(almoxarife))
        self.assertTrue(is_almoxarife_or_above(almoxarife))
        self.assertFalse(is_almoxarife_or_above(visualizador))

    def test_superuser_is_admin(self):
        superuser = TestDataFactory.create_user(is_superuser=True)
        self.assertEqual(get_role(superuser), 'ADMIN')
        self.assertIsNone(get_accessible_obra_ids(superuser))

    def test_obra_access_follows_links(self):
        user = TestDataFactory.create_user(role='ALMOXARIFE')
        obra = TestDataFactory.create_obra()
        outra = TestDataFactory.create_obra()
        TestDataFactory.link_user_obra(user, obra)

        self.assertTrue(has_obra_access(user, obra.id))
        self.assertFalse(has_obra_access(user, outra.id))
        # Almoxarifados without obra are admin only
        self.assertFalse(has_obra_access(user, None))

    def test_cache_key_scoped_by_access(self):
        admin = TestDataFactory.create_user(role='ADMIN')
        user = TestDataFactory.create_user()
        obra = TestDataFactory.create_obra()
        TestDataFactory.link_user_obra(user, obra)

        self.assertEqual(access_cache_key('dashboard', admin, 'stats'), 'dashboard_stats_all')
        self.assertEqual(access_cache_key('dashboard', user, 'stats'), f'dashboard_stats_{obra.id}')


class UserManagementTests(TestCase):
    """Test user CRUD and obra links (ADMIN only)"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='ADMIN')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_user(self):
        data = {
            'username': 'novo',
            'email': 'novo@test.com',
            'nome': 'Novo Usuário',
            'role': 'ALMOXARIFE',
            'password': 'Str0ngPassw0rd!',
            'password_confirm': 'Str0ngPassw0rd!',
        }
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'ALMOXARIFE')
        self.assertTrue(AuditLog.objects.filter(entidade='User', acao='create').exists())

    def test_create_user_password_mismatch(self):
        data = {
            'username': 'novo',
            'email': 'novo@test.com',
            'password': 'Str0ngPassw0rd!',
            'password_confirm': 'outra',
        }
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_cannot_list_users(self):
        gestor = TestDataFactory.create_user(role='GESTOR')
        self.client.authenticate_user(gestor)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_link_and_unlink_obra(self):
        user = TestDataFactory.create_user()
        obra = TestDataFactory.create_obra()

        response = self.client.post(f'/api/v1/users/{user.id}/obras/', {'obra': obra.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(get_accessible_obra_ids(user), [obra.id])

        response = self.client.delete(f'/api/v1/users/{user.id}/obras/', {'obra': obra.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(get_accessible_obra_ids(user), [])


class SettingTests(TestCase):
    """Test key/value settings"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='ADMIN')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_and_update_setting(self):
        response = self.client.post('/api/v1/settings/', {'key': 'empresa', 'value': 'Construtora X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.put('/api/v1/settings/empresa/', {'value': 'Construtora Y'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Setting.objects.get(key='empresa').value, 'Construtora Y')

    def test_non_admin_cannot_create_setting(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='GESTOR'))
        response = self.client.post('/api/v1/settings/', {'key': 'x', 'value': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogTests(TestCase):
    """Test audit trail helpers and listing"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='ADMIN')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(acao='create', entidade='Obra', entidade_id=None))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_list_filters_by_acao(self):
        create_audit_log(usuario=self.admin, acao='create', entidade='Obra', entidade_id=1)
        create_audit_log(usuario=self.admin, acao='delete', entidade='Obra', entidade_id=1)

        response = self.client.get('/api/v1/audit-logs/?acao=delete')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['acao'], 'delete')

    def test_non_admin_cannot_list(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='GESTOR'))
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
