"""
Test suite for parties module
Tests: Fornecedor CRUD, CNPJ normalization and uniqueness
"""
from django.test import TestCase
from rest_framework import status

from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.parties.models import Fornecedor, normalize_cnpj


class NormalizeCnpjTests(TestCase):

    def test_keeps_only_digits(self):
        self.assertEqual(normalize_cnpj('12.345.678/0001-90'), '12345678000190')

    def test_empty_values(self):
        self.assertIsNone(normalize_cnpj(''))
        self.assertIsNone(normalize_cnpj(None))
        self.assertIsNone(normalize_cnpj('./-'))


class FornecedorTests(TestCase):
    """Test fornecedor endpoints"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def test_create_with_formatted_cnpj(self):
        data = {'nome': 'Depósito São José', 'cnpj': '12.345.678/0001-90', 'telefone': '11999990000'}
        response = self.client.post('/api/v1/fornecedores/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['cnpj'], '12345678000190')

    def test_invalid_cnpj_length(self):
        response = self.client.post('/api/v1/fornecedores/', {'nome': 'Fornecedor', 'cnpj': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cnpj', response.data)

    def test_duplicate_cnpj(self):
        TestDataFactory.create_fornecedor(cnpj='12345678000190')
        response = self.client.post('/api/v1/fornecedores/', {'nome': 'Outro', 'cnpj': '12.345.678/0001-90'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_many_without_cnpj(self):
        for nome in ('Sem CNPJ 1', 'Sem CNPJ 2'):
            response = self.client.post('/api/v1/fornecedores/', {'nome': nome, 'cnpj': ''}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Fornecedor.objects.filter(cnpj__isnull=True).count(), 2)

    def test_update_keeps_own_cnpj(self):
        fornecedor = TestDataFactory.create_fornecedor(cnpj='12345678000190')
        response = self.client.patch(f'/api/v1/fornecedores/{fornecedor.id}/',
                                     {'cnpj': '12345678000190', 'telefone': '1133334444'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_search_and_ativo_filters(self):
        TestDataFactory.create_fornecedor(nome='Casa do Construtor')
        TestDataFactory.create_fornecedor(nome='Madeireira Norte', ativo=False)

        response = self.client.get('/api/v1/fornecedores/?search=constru')
        self.assertEqual([f['nome'] for f in response.data], ['Casa do Construtor'])

        response = self.client.get('/api/v1/fornecedores/?ativo=false')
        self.assertEqual([f['nome'] for f in response.data], ['Madeireira Norte'])

    def test_visualizador_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/fornecedores/', {'nome': 'Fornecedor'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
