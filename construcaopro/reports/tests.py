"""
Test suite for reports module
Tests: percentage helpers, dashboard stats, cost per obra, recent movements, obra cost breakdown
"""
from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.inventory import services as inventory_services
from construcaopro.reports import services


class PercentualTests(TestCase):
    """Test budget percentage helpers"""

    def test_percentual_rounds_half_up(self):
        self.assertEqual(services.percentual(Decimal('1'), Decimal('8')), 13)
        self.assertEqual(services.percentual(Decimal('1'), Decimal('200')), 1)
        self.assertEqual(services.percentual(Decimal('150'), Decimal('100')), 150)

    def test_percentual_without_budget(self):
        self.assertEqual(services.percentual(Decimal('500'), Decimal('0')), 0)
        self.assertEqual(services.percentual(Decimal('500'), None), 0)

    def test_nivel_orcamento(self):
        self.assertEqual(services.nivel_orcamento(70), 'ok')
        self.assertEqual(services.nivel_orcamento(71), 'atencao')
        self.assertEqual(services.nivel_orcamento(90), 'atencao')
        self.assertEqual(services.nivel_orcamento(91), 'critico')

    def test_ultimos_meses_crosses_year(self):
        meses = services._ultimos_meses(date(2024, 2, 20))
        self.assertEqual([m.strftime('%Y-%m') for m in meses],
                         ['2023-09', '2023-10', '2023-11', '2023-12', '2024-01', '2024-02'])


class ObraCustosServiceTests(TestCase):
    """Test the cost breakdown of an obra"""

    def setUp(self):
        self.obra = TestDataFactory.create_obra(
            orcamento=Decimal('10000.00'),
            valor_terreno=Decimal('2000.00'),
            valor_burocracia=Decimal('500.00'),
            valor_construcao=Decimal('1000.00'),
        )
        self.almoxarifado = TestDataFactory.create_almoxarifado(obra=self.obra)
        self.cimento = TestDataFactory.create_material(categoria=TestDataFactory.create_categoria(nome='Cimento'))
        self.aco = TestDataFactory.create_material(categoria=TestDataFactory.create_categoria(nome='Aço'))
        inventory_services.criar_movimentacao_entrada(self.cimento, self.almoxarifado, Decimal('10'),
                                                      preco_unitario=Decimal('30.00'))
        inventory_services.criar_movimentacao_entrada(self.aco, self.almoxarifado, Decimal('7'),
                                                      preco_unitario=Decimal('100.00'))

    def test_realizado_and_totals(self):
        custos = services.get_obra_custos(self.obra)
        self.assertEqual(custos['realizado'], Decimal('1000.00'))
        self.assertEqual(custos['total'], Decimal('4500.00'))
        self.assertEqual(custos['percentual'], 45)
        self.assertEqual(custos['saldo'], Decimal('5500.00'))
        self.assertEqual(custos['nivel_orcamento'], 'ok')
        self.assertIsNone(custos['lucro'])
        self.assertIsNone(custos['margem'])

    def test_saida_does_not_count_as_cost(self):
        inventory_services.criar_movimentacao_saida(self.cimento, self.almoxarifado, Decimal('5'))
        self.assertEqual(services.get_obra_custos(self.obra)['realizado'], Decimal('1000.00'))

    def test_por_categoria_sorted_by_value(self):
        por_categoria = services.get_obra_custos(self.obra)['por_categoria']
        self.assertEqual([c['categoria'] for c in por_categoria], ['Aço', 'Cimento'])
        self.assertEqual(por_categoria[0]['valor'], Decimal('700.00'))
        self.assertEqual(por_categoria[0]['percentual'], 70)
        self.assertEqual(por_categoria[1]['percentual'], 30)

    def test_tendencia_has_six_months(self):
        hoje = timezone.localdate()
        tendencia = services.get_obra_custos(self.obra, hoje=hoje)['tendencia']
        self.assertEqual(len(tendencia), 6)
        self.assertEqual(tendencia[-1], {'mes': hoje.strftime('%Y-%m'), 'valor': Decimal('1000.00')})
        self.assertTrue(all(item['valor'] == Decimal('0.00') for item in tendencia[:-1]))

    def test_lucro_and_margem_when_sold(self):
        self.obra.status = 'VENDIDO'
        self.obra.valor_venda = Decimal('6000.00')
        self.obra.save()
        custos = services.get_obra_custos(self.obra)
        self.assertEqual(custos['lucro'], Decimal('1500.00'))
        self.assertEqual(custos['margem'], Decimal('33.3'))

    def test_por_material_and_entradas(self):
        custos = services.get_obra_custos(self.obra)
        self.assertEqual(len(custos['entradas']), 2)
        subtotais = {item['material']: item['subtotal'] for item in custos['por_material']}
        self.assertEqual(subtotais[self.aco.nome], Decimal('700.00'))


class DashboardAPITests(TestCase):
    """Test dashboard endpoints and their access scoping"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_user(role='ADMIN')
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.obra_a = TestDataFactory.create_obra(nome='Residencial A', orcamento=Decimal('1000.00'))
        self.obra_b = TestDataFactory.create_obra(nome='Residencial B', orcamento=Decimal('1000.00'),
                                                  status='TERRENO', valor_terreno=Decimal('50000.00'))
        TestDataFactory.link_user_obra(self.gestor, self.obra_a)

        material = TestDataFactory.create_material(estoque_minimo=Decimal('100'))
        almox_a = TestDataFactory.create_almoxarifado(obra=self.obra_a)
        almox_b = TestDataFactory.create_almoxarifado(obra=self.obra_b)
        inventory_services.criar_movimentacao_entrada(material, almox_a, Decimal('95'),
                                                      preco_unitario=Decimal('10.00'))
        inventory_services.criar_movimentacao_entrada(material, almox_b, Decimal('10'),
                                                      preco_unitario=Decimal('10.00'))

        self.client = AuthenticatedAPIClient()

    def test_stats_for_admin(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_obras'], 2)
        self.assertEqual(response.data['obras_ativas'], 1)
        self.assertEqual(response.data['custo_total'], Decimal('1050.00'))
        self.assertEqual(response.data['orcamento_total'], Decimal('2000.00'))
        self.assertEqual(response.data['percentual'], 53)
        self.assertEqual(response.data['alertas_estoque'], 2)
        self.assertEqual(response.data['terrenos']['quantidade'], 1)
        self.assertEqual(response.data['obras_por_status']['TERRENO'], 1)

    def test_stats_scoped_to_linked_obras(self):
        self.client.authenticate_user(self.gestor)
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['total_obras'], 1)
        self.assertEqual(response.data['custo_total'], Decimal('950.00'))
        self.assertEqual(response.data['percentual'], 95)
        self.assertEqual(response.data['nivel_orcamento'], 'critico')
        self.assertEqual(response.data['total_movimentacoes'], 1)

    def test_custo_por_obra(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/dashboard/custo-por-obra/')
        self.assertEqual([item['obra'] for item in response.data], ['Residencial A', 'Residencial B'])
        self.assertEqual(response.data[0]['custo'], Decimal('950.00'))
        self.assertEqual(response.data[1]['percentual'], 10)
        self.assertEqual(response.data[1]['nivel_orcamento'], 'ok')

    def test_movimentacoes_recentes(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/dashboard/movimentacoes-recentes/?limit=1')
        self.assertEqual(len(response.data), 1)

        self.client.authenticate_user(self.gestor)
        response = self.client.get('/api/v1/dashboard/movimentacoes-recentes/')
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/v1/dashboard/movimentacoes-recentes/?limit=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_obra_custos_endpoint(self):
        self.client.authenticate_user(self.gestor)
        response = self.client.get(f'/api/v1/obras/{self.obra_a.id}/custos/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['realizado'], Decimal('950.00'))

        response = self.client.get(f'/api/v1/obras/{self.obra_b.id}/custos/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_stats_are_cached_per_access_scope(self):
        self.client.authenticate_user(self.gestor)
        self.client.get('/api/v1/dashboard/stats/')
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['total_obras'], 2)
