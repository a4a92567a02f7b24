"""
Test suite for inventory module
Tests: entradas, saídas, two-level transfers, zerar, grouping by obra, alerts, check_estoque
"""
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.exceptions import PermissionDenied
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from construcaopro.core.exceptions import StockError, TransferError
from construcaopro.core.models import AuditLog
from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.inventory import services
from construcaopro.inventory.models import Estoque, Movimentacao


class StockServiceTests(TestCase):
    """Test stock arithmetic in the service layer"""

    def setUp(self):
        self.obra = TestDataFactory.create_obra()
        self.almoxarifado = TestDataFactory.create_almoxarifado(obra=self.obra)
        self.material = TestDataFactory.create_material(preco_unitario=Decimal('10.00'))

    def test_entrada_creates_stock_and_updates_price(self):
        movimentacao = services.criar_movimentacao_entrada(self.material, self.almoxarifado, Decimal('25'),
                                                           preco_unitario=Decimal('12.50'))
        self.assertEqual(movimentacao.tipo, 'ENTRADA')
        self.assertEqual(services.quantidade_disponivel(self.almoxarifado, self.material), Decimal('25'))
        self.material.refresh_from_db()
        self.assertEqual(self.material.preco_unitario, Decimal('12.50'))

    def test_entrada_without_price_keeps_material_price(self):
        services.criar_movimentacao_entrada(self.material, self.almoxarifado, Decimal('1'))
        self.material.refresh_from_db()
        self.assertEqual(self.material.preco_unitario, Decimal('10.00'))

    def test_quantidade_must_be_positive(self):
        with self.assertRaises(StockError):
            services.criar_movimentacao_entrada(self.material, self.almoxarifado, Decimal('0'))

    def test_quantidade_rounded_to_stored_precision(self):
        movimentacao = services.criar_movimentacao_entrada(self.material, self.almoxarifado, Decimal('1.2345'))
        movimentacao.refresh_from_db()
        self.assertEqual(movimentacao.quantidade, Decimal('1.235'))
        self.assertEqual(services.quantidade_disponivel(self.almoxarifado, self.material), Decimal('1.235'))
        with self.assertRaises(StockError):
            services.criar_movimentacao_entrada(self.material, self.almoxarifado, Decimal('0.0004'))

    def test_saida_reduces_stock(self):
        services.criar_movimentacao_entrada(self.material, self.almoxarifado, Decimal('10'))
        services.criar_movimentacao_saida(self.material, self.almoxarifado, Decimal('4'))
        self.assertEqual(services.quantidade_disponivel(self.almoxarifado, self.material), Decimal('6'))

    def test_saida_insufficient_stock(self):
        services.criar_movimentacao_entrada(self.material, self.almoxarifado, Decimal('3'))
        with self.assertRaises(StockError):
            services.criar_movimentacao_saida(self.material, self.almoxarifado, Decimal('5'))
        self.assertEqual(services.quantidade_disponivel(self.almoxarifado, self.material), Decimal('3'))
        self.assertEqual(Movimentacao.objects.filter(tipo='SAIDA').count(), 0)

    def test_zerar_estoque(self):
        services.criar_movimentacao_entrada(self.material, self.almoxarifado, Decimal('7.5'))
        estoque = Estoque.objects.get(almoxarifado=self.almoxarifado, material=self.material)
        movimentacao = services.zerar_estoque(estoque)
        self.assertEqual(movimentacao.quantidade, Decimal('7.5'))
        estoque.refresh_from_db()
        self.assertEqual(estoque.quantidade, Decimal('0'))
        with self.assertRaises(StockError):
            services.zerar_estoque(estoque)


class TransferenciaServiceTests(TestCase):
    """Test the two-level transfer approval"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='ADMIN')
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.almoxarife = TestDataFactory.create_user(role='ALMOXARIFE')
        self.origem = TestDataFactory.create_almoxarifado(obra=TestDataFactory.create_obra())
        self.destino = TestDataFactory.create_almoxarifado(obra=TestDataFactory.create_obra())
        self.material = TestDataFactory.create_material()
        services.criar_movimentacao_entrada(self.material, self.origem, Decimal('100'))

    def _transferir(self, quantidade=Decimal('40')):
        return services.criar_movimentacao_transferencia(self.material, self.origem, self.destino, quantidade,
                                                         usuario=self.almoxarife)

    def test_request_does_not_move_stock(self):
        movimentacao = self._transferir()
        self.assertEqual(movimentacao.status_transferencia, 'PENDENTE')
        self.assertEqual(services.quantidade_disponivel(self.origem, self.material), Decimal('100'))

    def test_same_origin_and_destination(self):
        with self.assertRaises(TransferError):
            services.criar_movimentacao_transferencia(self.material, self.origem, self.origem, Decimal('1'))

    def test_request_more_than_available(self):
        with self.assertRaises(StockError):
            self._transferir(Decimal('101'))

    def test_full_approval_moves_stock(self):
        movimentacao = self._transferir()
        movimentacao = services.aprovar_transferencia(movimentacao, self.gestor)
        self.assertEqual(movimentacao.status_transferencia, 'APROVADA_NIVEL_1')
        self.assertEqual(services.quantidade_disponivel(self.destino, self.material), Decimal('0'))

        movimentacao = services.aprovar_transferencia(movimentacao, self.admin)
        self.assertEqual(movimentacao.status_transferencia, 'APROVADA')
        self.assertEqual(movimentacao.aprovado_por, self.admin)
        self.assertEqual(services.quantidade_disponivel(self.origem, self.material), Decimal('60'))
        self.assertEqual(services.quantidade_disponivel(self.destino, self.material), Decimal('40'))

    def test_almoxarife_cannot_approve(self):
        movimentacao = self._transferir()
        with self.assertRaises(PermissionDenied):
            services.aprovar_transferencia(movimentacao, self.almoxarife)

    def test_gestor_cannot_give_final_approval(self):
        movimentacao = services.aprovar_transferencia(self._transferir(), self.gestor)
        with self.assertRaises(PermissionDenied):
            services.aprovar_transferencia(movimentacao, self.gestor)

    def test_final_approval_rechecks_stock(self):
        movimentacao = services.aprovar_transferencia(self._transferir(Decimal('80')), self.gestor)
        services.criar_movimentacao_saida(self.material, self.origem, Decimal('50'))
        with self.assertRaises(StockError):
            services.aprovar_transferencia(movimentacao, self.admin)
        self.assertEqual(services.quantidade_disponivel(self.origem, self.material), Decimal('50'))

    def test_rejected_transfer_cannot_be_approved(self):
        movimentacao = services.rejeitar_transferencia(self._transferir(), self.gestor, motivo='Não precisa')
        self.assertEqual(movimentacao.status_transferencia, 'REJEITADA')
        self.assertIn('Não precisa', movimentacao.observacao)
        with self.assertRaises(TransferError):
            services.aprovar_transferencia(movimentacao, self.admin)

    def test_stock_matches_history(self):
        movimentacao = self._transferir()
        services.aprovar_transferencia(movimentacao, self.gestor)
        services.aprovar_transferencia(movimentacao, self.admin)
        services.criar_movimentacao_saida(self.material, self.destino, Decimal('5'))

        esperado = services.calcular_estoque_esperado()
        for estoque in Estoque.objects.all():
            self.assertEqual(esperado[(estoque.almoxarifado_id, estoque.material_id)], estoque.quantidade)


class AgruparEstoqueTests(TestCase):
    """Test grouping of stock by obra"""

    def test_groups_and_totals(self):
        obra = TestDataFactory.create_obra(nome='Bloco B')
        com_obra = TestDataFactory.create_almoxarifado(obra=obra)
        sem_obra = TestDataFactory.create_almoxarifado(obra=None)
        barato = TestDataFactory.create_material(preco_unitario=Decimal('2.00'), estoque_minimo=Decimal('10'))
        caro = TestDataFactory.create_material(preco_unitario=Decimal('50.00'))

        services.criar_movimentacao_entrada(barato, com_obra, Decimal('5'))
        services.criar_movimentacao_entrada(caro, com_obra, Decimal('2'))
        services.criar_movimentacao_entrada(caro, sem_obra, Decimal('1'))

        estoques = Estoque.objects.select_related('material', 'almoxarifado', 'almoxarifado__obra')
        resultado = services.agrupar_estoque_por_obra(estoques)

        nomes = [grupo['obra_nome'] for grupo in resultado['obras']]
        self.assertEqual(nomes, ['Bloco B', 'Sem Obra'])
        bloco = resultado['obras'][0]
        self.assertEqual(bloco['total_itens'], 2)
        self.assertEqual(bloco['custo_total'], Decimal('110.00'))
        self.assertEqual(bloco['estoque_baixo'], 1)
        self.assertEqual(resultado['totais']['itens'], 3)
        self.assertEqual(resultado['totais']['custo'], Decimal('160.00'))
        self.assertEqual(resultado['totais']['obras'], 2)


class MovimentacaoAPITests(TestCase):
    """Test stock endpoints"""

    def setUp(self):
        cache.clear()
        self.almoxarife = TestDataFactory.create_user(role='ALMOXARIFE')
        self.obra = TestDataFactory.create_obra()
        TestDataFactory.link_user_obra(self.almoxarife, self.obra)
        self.almoxarifado = TestDataFactory.create_almoxarifado(obra=self.obra)
        self.material = TestDataFactory.create_material(estoque_minimo=Decimal('5'))
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.almoxarife)

    def _entrada(self, quantidade='10', **extra):
        data = {'material': self.material.id, 'almoxarifado': self.almoxarifado.id, 'quantidade': quantidade,
                'preco_unitario': '3.20'}
        data.update(extra)
        return self.client.post('/api/v1/movimentacoes/entrada/', data, format='json')

    def test_entrada_endpoint(self):
        response = self._entrada()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['tipo'], 'ENTRADA')
        self.assertEqual(response.data['valor_total'], '32.00')
        self.assertTrue(AuditLog.objects.filter(acao='movimentacao_entrada').exists())

    def test_entrada_negative_quantity(self):
        response = self._entrada(quantidade='-1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_visualizador_cannot_move_stock(self):
        visualizador = TestDataFactory.create_user()
        TestDataFactory.link_user_obra(visualizador, self.obra)
        self.client.authenticate_user(visualizador)
        self.assertEqual(self._entrada().status_code, status.HTTP_403_FORBIDDEN)

    def test_unlinked_obra_forbidden(self):
        outro = TestDataFactory.create_almoxarifado(obra=TestDataFactory.create_obra())
        response = self._entrada(almoxarifado=outro.id)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_saida_insufficient_returns_400(self):
        self._entrada(quantidade='2')
        data = {'material': self.material.id, 'almoxarifado': self.almoxarifado.id, 'quantidade': '3'}
        response = self.client.post('/api/v1/movimentacoes/saida/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_transfer_approval_roles_over_api(self):
        destino = TestDataFactory.create_almoxarifado(obra=self.obra)
        self._entrada(quantidade='10')
        data = {'material': self.material.id, 'almoxarifado': self.almoxarifado.id,
                'almoxarifado_destino': destino.id, 'quantidade': '4'}
        response = self.client.post('/api/v1/movimentacoes/transferencia/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        pk = response.data['id']

        response = self.client.post(f'/api/v1/movimentacoes/{pk}/aprovar/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        gestor = TestDataFactory.create_user(role='GESTOR')
        TestDataFactory.link_user_obra(gestor, self.obra)
        self.client.authenticate_user(gestor)
        response = self.client.post(f'/api/v1/movimentacoes/{pk}/aprovar/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status_transferencia'], 'APROVADA_NIVEL_1')

        self.client.authenticate_user(TestDataFactory.create_user(role='ADMIN'))
        response = self.client.post(f'/api/v1/movimentacoes/{pk}/aprovar/')
        self.assertEqual(response.data['status_transferencia'], 'APROVADA')
        self.assertEqual(services.quantidade_disponivel(destino, self.material), Decimal('4'))

    def test_transfer_into_unlinked_obra_forbidden(self):
        self._entrada(quantidade='10')
        outra_obra = TestDataFactory.create_almoxarifado(obra=TestDataFactory.create_obra())
        sem_obra = TestDataFactory.create_almoxarifado(obra=None)

        for destino in (outra_obra, sem_obra):
            data = {'material': self.material.id, 'almoxarifado': self.almoxarifado.id,
                    'almoxarifado_destino': destino.id, 'quantidade': '1'}
            response = self.client.post('/api/v1/movimentacoes/transferencia/', data, format='json')
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Movimentacao.objects.filter(tipo='TRANSFERENCIA').exists())

    def test_alertas(self):
        self._entrada(quantidade='3')
        response = self.client.get('/api/v1/estoque/alertas/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertTrue(response.data[0]['estoque_baixo'])

    def test_estoque_por_obra_invalidated_by_movements(self):
        self._entrada(quantidade='3')
        response = self.client.get('/api/v1/estoque/por-obra/')
        self.assertEqual(response.data['totais']['quantidade'], Decimal('3'))

        with self.captureOnCommitCallbacks(execute=True):
            self._entrada(quantidade='2')
        response = self.client.get('/api/v1/estoque/por-obra/')
        self.assertEqual(response.data['totais']['quantidade'], Decimal('5'))

    def test_zerar_via_delete(self):
        self._entrada(quantidade='6')
        estoque = Estoque.objects.get(almoxarifado=self.almoxarifado, material=self.material)
        response = self.client.delete(f'/api/v1/estoque/{estoque.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['quantidade']), Decimal('0'))
        self.assertTrue(AuditLog.objects.filter(acao='estoque_zerar').exists())

    def test_movimentacao_list_filters(self):
        self._entrada(quantidade='6')
        data = {'material': self.material.id, 'almoxarifado': self.almoxarifado.id, 'quantidade': '1'}
        self.client.post('/api/v1/movimentacoes/saida/', data, format='json')

        response = self.client.get('/api/v1/movimentacoes/?tipo=SAIDA')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/movimentacoes/?limit=1')
        self.assertEqual(len(response.data), 1)
        response = self.client.get(f'/api/v1/obras/{self.obra.id}/movimentacoes/')
        self.assertEqual(len(response.data), 2)


class CheckEstoqueCommandTests(TestCase):
    """Test the check_estoque management command"""

    def test_detects_and_fixes_drift(self):
        almoxarifado = TestDataFactory.create_almoxarifado(obra=TestDataFactory.create_obra())
        material = TestDataFactory.create_material()
        services.criar_movimentacao_entrada(material, almoxarifado, Decimal('10'))
        Estoque.objects.filter(almoxarifado=almoxarifado, material=material).update(quantidade=Decimal('7'))

        out = StringIO()
        call_command('check_estoque', stdout=out)
        self.assertIn('Discrepancies: 1', out.getvalue())

        call_command('check_estoque', '--fix', stdout=StringIO())
        self.assertEqual(services.quantidade_disponivel(almoxarifado, material), Decimal('10'))
