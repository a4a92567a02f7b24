"""
Test suite for catalog module
Tests: Categoria CRUD, Material CRUD and filters, labels, add_categorias command
"""
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from construcaopro.catalog.label_generator import generate_label_image
from construcaopro.catalog.models import Categoria, Material
from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.inventory import services as estoque_services


class CategoriaTests(TestCase):
    """Test categoria endpoints"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def test_create_categoria(self):
        response = self.client.post('/api/v1/categorias/', {'nome': 'Cimento', 'unidade': 'SC'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['unidade'], 'SC')

    def test_invalid_unit(self):
        response = self.client.post('/api/v1/categorias/', {'nome': 'Cimento', 'unidade': 'XX'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_includes_material_count(self):
        categoria = TestDataFactory.create_categoria(nome='Tintas')
        TestDataFactory.create_material(categoria=categoria)
        TestDataFactory.create_material(categoria=categoria)
        response = self.client.get('/api/v1/categorias/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['materiais_count'], 2)

    def test_delete_categoria_with_materials_refused(self):
        categoria = TestDataFactory.create_categoria()
        TestDataFactory.create_material(categoria=categoria)
        response = self.client.delete(f'/api/v1/categorias/{categoria.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Categoria.objects.filter(id=categoria.id).exists())

    def test_almoxarife_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='ALMOXARIFE'))
        response = self.client.post('/api/v1/categorias/', {'nome': 'Cimento', 'unidade': 'SC'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MaterialTests(TestCase):
    """Test material endpoints"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.categoria = TestDataFactory.create_categoria(nome='Aço', unidade='KG')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def test_create_material(self):
        data = {
            'nome': 'Vergalhão 10mm',
            'codigo': 'VG10',
            'categoria': self.categoria.id,
            'estoque_minimo': '50',
            'preco_unitario': '8.50',
        }
        response = self.client.post('/api/v1/materiais/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['unidade'], 'KG')
        self.assertEqual(response.data['categoria_nome'], 'Aço')

    def test_duplicate_codigo(self):
        TestDataFactory.create_material(codigo='VG10', categoria=self.categoria)
        data = {'nome': 'Outro', 'codigo': 'VG10', 'categoria': self.categoria.id}
        response = self.client.post('/api/v1/materiais/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_and_categoria_filter(self):
        TestDataFactory.create_material(nome='Vergalhão 8mm', categoria=self.categoria)
        TestDataFactory.create_material(nome='Cimento CP2')

        response = self.client.get('/api/v1/materiais/?search=vergal')
        self.assertEqual([m['nome'] for m in response.data], ['Vergalhão 8mm'])

        response = self.client.get(f'/api/v1/materiais/?categoria={self.categoria.id}')
        self.assertEqual(len(response.data), 1)

    def test_update_material_price(self):
        material = TestDataFactory.create_material(categoria=self.categoria)
        response = self.client.patch(f'/api/v1/materiais/{material.id}/', {'preco_unitario': '12.30'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        material.refresh_from_db()
        self.assertEqual(material.preco_unitario, Decimal('12.30'))

    def test_delete_material_with_movements_refused(self):
        material = TestDataFactory.create_material(categoria=self.categoria)
        almoxarifado = TestDataFactory.create_almoxarifado(obra=TestDataFactory.create_obra())
        estoque_services.criar_movimentacao_entrada(material, almoxarifado, Decimal('5'))

        response = self.client.delete(f'/api/v1/materiais/{material.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Material.objects.filter(id=material.id).exists())

    def test_delete_material_without_movements(self):
        material = TestDataFactory.create_material(categoria=self.categoria)
        response = self.client.delete(f'/api/v1/materiais/{material.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_etiqueta(self):
        material = TestDataFactory.create_material(categoria=self.categoria, codigo='VG12', codigo_barras='7891234567895')
        response = self.client.get(f'/api/v1/materiais/{material.id}/etiqueta/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['codigo'], '7891234567895')
        self.assertTrue(response.data['image'].startswith('data:image/png;base64,'))


class LabelGeneratorTests(TestCase):
    """Test label rendering"""

    def test_long_names_are_rendered(self):
        image = generate_label_image('Material com um nome realmente muito comprido para etiqueta', 'ABC-123',
                                     categoria_nome='Ferragens', unidade='CX')
        self.assertTrue(image.startswith('data:image/png;base64,'))


class AddCategoriasCommandTests(TestCase):
    """Test the add_categorias management command"""

    def test_command_is_idempotent(self):
        call_command('add_categorias', stdout=StringIO())
        total = Categoria.objects.count()
        self.assertGreater(total, 0)
        call_command('add_categorias', stdout=StringIO())
        self.assertEqual(Categoria.objects.count(), total)
