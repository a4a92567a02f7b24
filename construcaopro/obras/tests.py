"""
Test suite for obras module
Tests: Obra CRUD, access scoping, Almoxarifado CRUD
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.obras.models import Obra, Almoxarifado, UsuarioObra


class ObraTests(TestCase):
    """Test obra endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='ADMIN')
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.visualizador = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_obra(self):
        data = {'nome': 'Residencial Alfa', 'endereco': 'Rua das Flores, 123', 'orcamento': '150000.00'}
        response = self.client.post('/api/v1/obras/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'ATIVA')
        self.assertEqual(Obra.objects.get(id=response.data['id']).orcamento, Decimal('150000.00'))

    def test_create_obra_short_name(self):
        data = {'nome': 'A', 'endereco': 'Rua das Flores, 123'}
        response = self.client.post('/api/v1/obras/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('nome', response.data)

    def test_create_obra_negative_budget(self):
        data = {'nome': 'Obra', 'endereco': 'Rua das Flores, 123', 'orcamento': '-1'}
        response = self.client.post('/api/v1/obras/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_visualizador_cannot_create(self):
        self.client.authenticate_user(self.visualizador)
        data = {'nome': 'Obra', 'endereco': 'Rua das Flores, 123'}
        response = self.client.post('/api/v1/obras/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_gestor_is_linked_to_created_obra(self):
        self.client.authenticate_user(self.gestor)
        data = {'nome': 'Obra Gestor', 'endereco': 'Avenida Central, 45'}
        response = self.client.post('/api/v1/obras/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(UsuarioObra.objects.filter(usuario=self.gestor, obra_id=response.data['id']).exists())

    def test_list_scoped_to_linked_obras(self):
        visivel = TestDataFactory.create_obra(nome='Visível')
        TestDataFactory.create_obra(nome='Oculta')
        TestDataFactory.link_user_obra(self.visualizador, visivel)

        self.client.authenticate_user(self.visualizador)
        response = self.client.get('/api/v1/obras/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['nome'] for o in response.data], ['Visível'])

    def test_detail_of_unlinked_obra_is_404(self):
        obra = TestDataFactory.create_obra()
        self.client.authenticate_user(self.visualizador)
        response = self.client.get(f'/api/v1/obras/{obra.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_filter_by_status(self):
        TestDataFactory.create_obra(status='ATIVA')
        TestDataFactory.create_obra(status='TERRENO')
        response = self.client.get('/api/v1/obras/?status=TERRENO')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['status'], 'TERRENO')

    def test_update_obra(self):
        obra = TestDataFactory.create_obra()
        response = self.client.patch(f'/api/v1/obras/{obra.id}/', {'status': 'PAUSADA'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        obra.refresh_from_db()
        self.assertEqual(obra.status, 'PAUSADA')

    def test_delete_obra_cascades_almoxarifados(self):
        obra = TestDataFactory.create_obra()
        TestDataFactory.create_almoxarifado(obra=obra)
        response = self.client.delete(f'/api/v1/obras/{obra.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Almoxarifado.objects.filter(obra_id=obra.id).exists())


class AlmoxarifadoTests(TestCase):
    """Test almoxarifado endpoints"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.obra = TestDataFactory.create_obra()
        TestDataFactory.link_user_obra(self.gestor, self.obra)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def test_create_almoxarifado(self):
        response = self.client.post('/api/v1/almoxarifados/', {'nome': 'Depósito 1', 'obra': self.obra.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['obra_nome'], self.obra.nome)

    def test_create_in_unlinked_obra_forbidden(self):
        outra = TestDataFactory.create_obra()
        response = self.client.post('/api/v1/almoxarifados/', {'nome': 'Depósito', 'obra': outra.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filtered_by_obra(self):
        TestDataFactory.create_almoxarifado(obra=self.obra, nome='A1')
        outra = TestDataFactory.create_obra()
        TestDataFactory.link_user_obra(self.gestor, outra)
        TestDataFactory.create_almoxarifado(obra=outra, nome='B1')

        response = self.client.get(f'/api/v1/almoxarifados/?obra={self.obra.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([a['nome'] for a in response.data], ['A1'])

    def test_obra_almoxarifados(self):
        TestDataFactory.create_almoxarifado(obra=self.obra, nome='Central')
        response = self.client.get(f'/api/v1/obras/{self.obra.id}/almoxarifados/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
