"""
Test suite for financeiro module
Tests: account ledger, switches, inter-account transfers, estorno, grouping, resumo, meta, endpoints
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from construcaopro.core.exceptions import LedgerError
from construcaopro.core.models import AuditLog
from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.financeiro import services
from construcaopro.financeiro.models import FinanceiroConta, FinanceiroMovimentacao


class LedgerServiceTests(TestCase):
    """Test balance changes done by the ledger services"""

    def setUp(self):
        self.conta = TestDataFactory.create_conta(banco='Itaú', valor_caixa=Decimal('1000.00'),
                                                  valor_aplicado=Decimal('500.00'))

    def _reload(self, conta=None):
        conta = conta or self.conta
        conta.refresh_from_db()
        return conta

    def test_abrir_conta_books_opening_balance(self):
        conta = services.abrir_conta('Bradesco', valor_inicial=Decimal('2500.00'), subconta='APLICADO')
        self.assertEqual(conta.valor_aplicado, Decimal('2500.00'))
        self.assertEqual(conta.valor_caixa, Decimal('0.00'))
        movimentacao = conta.movimentacoes.get()
        self.assertEqual(movimentacao.tipo, 'ENTRADA')
        self.assertEqual(movimentacao.motivo, 'Saldo Inicial (Aplicações)')

    def test_abrir_conta_without_balance(self):
        conta = services.abrir_conta('Caixa Econômica')
        self.assertEqual(conta.valor_total, Decimal('0.00'))
        self.assertFalse(conta.movimentacoes.exists())

    def test_entrada_and_saida(self):
        services.registrar_movimentacao(self.conta, 'ENTRADA', 'CAIXA', 'Venda apto 12', Decimal('300.00'))
        services.registrar_movimentacao(self.conta, 'SAIDA', 'APLICADO', 'Resgate', Decimal('100.00'))
        conta = self._reload()
        self.assertEqual(conta.valor_caixa, Decimal('1300.00'))
        self.assertEqual(conta.valor_aplicado, Decimal('400.00'))

    def test_saida_may_go_negative(self):
        services.registrar_movimentacao(self.conta, 'SAIDA', 'CAIXA', 'Pagamento fornecedor', Decimal('1500.00'))
        self.assertEqual(self._reload().valor_caixa, Decimal('-500.00'))

    def test_switch_moves_between_subaccounts(self):
        services.registrar_movimentacao(self.conta, 'TRANSFERENCIA', 'CAIXA', 'Aplicar', Decimal('200.00'),
                                        destino='SWITCH')
        conta = self._reload()
        self.assertEqual(conta.valor_caixa, Decimal('800.00'))
        self.assertEqual(conta.valor_aplicado, Decimal('700.00'))
        self.assertEqual(conta.valor_total, Decimal('1500.00'))

    def test_transfer_to_other_account_lands_in_caixa(self):
        destino = TestDataFactory.create_conta(banco='Nubank')
        services.registrar_movimentacao(self.conta, 'TRANSFERENCIA', 'APLICADO', 'Reforço', Decimal('250.00'),
                                        destino=destino.pk)
        self.assertEqual(self._reload().valor_aplicado, Decimal('250.00'))
        destino = self._reload(destino)
        self.assertEqual(destino.valor_caixa, Decimal('250.00'))
        self.assertEqual(destino.valor_aplicado, Decimal('0.00'))

    def test_estorno_is_inverse(self):
        destino = TestDataFactory.create_conta(banco='Inter')
        movimentos = [
            services.registrar_movimentacao(self.conta, 'ENTRADA', 'APLICADO', 'Rendimento', Decimal('12.34')),
            services.registrar_movimentacao(self.conta, 'TRANSFERENCIA', 'APLICADO', 'Resgate', Decimal('50.00'),
                                            destino='SWITCH'),
            services.registrar_movimentacao(self.conta, 'TRANSFERENCIA', 'CAIXA', 'Repasse', Decimal('80.00'),
                                            destino=str(destino.pk)),
        ]
        for movimentacao in reversed(movimentos):
            services.estornar_movimentacao(movimentacao)

        conta = self._reload()
        self.assertEqual(conta.valor_caixa, Decimal('1000.00'))
        self.assertEqual(conta.valor_aplicado, Decimal('500.00'))
        self.assertEqual(self._reload(destino).valor_caixa, Decimal('0.00'))
        self.assertFalse(FinanceiroMovimentacao.objects.exists())

    def test_estorno_after_destination_deleted(self):
        destino = TestDataFactory.create_conta(banco='Inter')
        movimentacao = services.registrar_movimentacao(self.conta, 'TRANSFERENCIA', 'CAIXA', 'Repasse',
                                                       Decimal('80.00'), destino=destino.pk)
        destino.delete()
        services.estornar_movimentacao(movimentacao)
        self.assertEqual(self._reload().valor_caixa, Decimal('1000.00'))

    def test_invalid_movements(self):
        casos = [
            dict(tipo='ENTRADA', subconta='CAIXA', motivo='x', valor=Decimal('0')),
            dict(tipo='ENTRADA', subconta='CAIXA', motivo='x', valor=Decimal('-5')),
            dict(tipo='DEPOSITO', subconta='CAIXA', motivo='x', valor=Decimal('5')),
            dict(tipo='ENTRADA', subconta='POUPANCA', motivo='x', valor=Decimal('5')),
            dict(tipo='ENTRADA', subconta='CAIXA', motivo='   ', valor=Decimal('5')),
            dict(tipo='TRANSFERENCIA', subconta='CAIXA', motivo='x', valor=Decimal('5')),
            dict(tipo='TRANSFERENCIA', subconta='CAIXA', motivo='x', valor=Decimal('5'), destino='abc'),
            dict(tipo='TRANSFERENCIA', subconta='CAIXA', motivo='x', valor=Decimal('5'), destino=self.conta.pk),
            dict(tipo='TRANSFERENCIA', subconta='CAIXA', motivo='x', valor=Decimal('5'), destino='99999'),
        ]
        for caso in casos:
            with self.subTest(caso=caso):
                with self.assertRaises(LedgerError):
                    services.registrar_movimentacao(self.conta, **caso)

        conta = self._reload()
        self.assertEqual(conta.valor_caixa, Decimal('1000.00'))
        self.assertFalse(FinanceiroMovimentacao.objects.exists())

    def test_balances_equal_history(self):
        conta = services.abrir_conta('Santander', valor_inicial=Decimal('100.00'))
        services.registrar_movimentacao(conta, 'ENTRADA', 'APLICADO', 'Aporte', Decimal('40.00'))
        services.registrar_movimentacao(conta, 'TRANSFERENCIA', 'APLICADO', 'Resgate', Decimal('15.00'),
                                        destino='SWITCH')
        services.registrar_movimentacao(conta, 'SAIDA', 'CAIXA', 'Material', Decimal('30.00'))

        caixa = aplicado = Decimal('0')
        for m in conta.movimentacoes.all():
            if m.tipo == 'ENTRADA':
                caixa, aplicado = (caixa + m.valor, aplicado) if m.subconta == 'CAIXA' else (caixa, aplicado + m.valor)
            elif m.tipo == 'SAIDA':
                caixa, aplicado = (caixa - m.valor, aplicado) if m.subconta == 'CAIXA' else (caixa, aplicado - m.valor)
            elif m.subconta == 'APLICADO':
                caixa, aplicado = caixa + m.valor, aplicado - m.valor
            else:
                caixa, aplicado = caixa - m.valor, aplicado + m.valor

        conta.refresh_from_db()
        self.assertEqual(conta.valor_caixa, caixa)
        self.assertEqual(conta.valor_aplicado, aplicado)


class LedgerHelperTests(TestCase):
    """Test grouping, percentages and summary"""

    def test_grupo_da_data(self):
        hoje = date(2024, 3, 15)
        self.assertEqual(services.grupo_da_data(date(2024, 3, 15), hoje), 'Hoje')
        self.assertEqual(services.grupo_da_data(date(2024, 3, 9), hoje), 'Esta Semana')
        self.assertEqual(services.grupo_da_data(date(2024, 3, 8), hoje), 'Anteriores')

    def test_agrupar_movimentacoes_keeps_order_and_skips_empty(self):
        conta = TestDataFactory.create_conta()
        hoje = date(2024, 3, 15)
        antiga = services.registrar_movimentacao(conta, 'ENTRADA', 'CAIXA', 'a', 1, data=date(2024, 1, 2))
        recente = services.registrar_movimentacao(conta, 'ENTRADA', 'CAIXA', 'b', 1, data=hoje)
        grupos = services.agrupar_movimentacoes([recente, antiga], hoje=hoje)
        self.assertEqual([titulo for titulo, _ in grupos], ['Hoje', 'Anteriores'])
        self.assertEqual(grupos[1][1], [antiga])

    def test_caixa_percentual(self):
        self.assertEqual(services.caixa_percentual(TestDataFactory.create_conta()), 0)
        conta = TestDataFactory.create_conta(valor_caixa=Decimal('1.00'), valor_aplicado=Decimal('1.00'))
        self.assertEqual(services.caixa_percentual(conta), 50)
        conta = TestDataFactory.create_conta(valor_caixa=Decimal('1.00'), valor_aplicado=Decimal('7.00'))
        self.assertEqual(services.caixa_percentual(conta), 13)

    def test_resumo_with_meta_and_terrenos(self):
        TestDataFactory.create_conta(valor_caixa=Decimal('300.00'), valor_aplicado=Decimal('200.00'))
        TestDataFactory.create_conta(valor_caixa=Decimal('250.00'))
        TestDataFactory.create_obra(status='TERRENO', valor_terreno=Decimal('80000.00'))
        TestDataFactory.create_obra(status='ATIVA', valor_terreno=Decimal('5000.00'))
        services.set_meta(Decimal('1000.00'))

        resumo = services.calcular_resumo()
        self.assertEqual(resumo['total_caixa'], Decimal('550.00'))
        self.assertEqual(resumo['total_aplicado'], Decimal('200.00'))
        self.assertEqual(resumo['total_disponivel'], Decimal('750.00'))
        self.assertEqual(resumo['contas'], 2)
        self.assertEqual(resumo['meta_percentual'], 75)
        self.assertEqual(resumo['meta_faltante'], Decimal('250.00'))
        self.assertEqual(resumo['terrenos'], {'quantidade': 1, 'valor_total': Decimal('80000.00')})

    def test_meta_percentual_is_capped(self):
        TestDataFactory.create_conta(valor_caixa=Decimal('5000.00'))
        services.set_meta(Decimal('1000.00'))
        resumo = services.calcular_resumo()
        self.assertEqual(resumo['meta_percentual'], 100)
        self.assertEqual(resumo['meta_faltante'], Decimal('0.00'))

    def test_without_meta(self):
        self.assertEqual(services.get_meta(), Decimal('0.00'))
        self.assertEqual(services.calcular_resumo()['meta_percentual'], 0)
        with self.assertRaises(LedgerError):
            services.set_meta(Decimal('-1'))


class FinanceiroAPITests(TestCase):
    """Test financeiro endpoints"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def _criar_conta(self, **extra):
        data = {'banco': 'Banco do Brasil', 'agencia': '1234', 'numero_conta': '55555-5', 'valor_inicial': '1000.00'}
        data.update(extra)
        return self.client.post('/api/v1/financeiro/contas/', data, format='json')

    def test_create_conta_with_opening_balance(self):
        response = self._criar_conta()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['valor_caixa'], '1000.00')
        self.assertEqual(response.data['valor_total'], '1000.00')
        self.assertNotIn('valor_inicial', response.data)

    def test_create_conta_short_banco(self):
        response = self._criar_conta(banco='B')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('banco', response.data)

    def test_balances_cannot_be_edited_directly(self):
        conta_id = self._criar_conta().data['id']
        response = self.client.patch(f'/api/v1/financeiro/contas/{conta_id}/',
                                     {'banco': 'BB', 'valor_caixa': '99999.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        conta = FinanceiroConta.objects.get(pk=conta_id)
        self.assertEqual(conta.banco, 'BB')
        self.assertEqual(conta.valor_caixa, Decimal('1000.00'))

    def test_register_movement_and_estorno(self):
        conta_id = self._criar_conta().data['id']
        url = f'/api/v1/financeiro/contas/{conta_id}/movimentacoes/'
        response = self.client.post(url, {'tipo': 'SAIDA', 'subconta': 'CAIXA', 'motivo': 'Cimento',
                                          'valor': '150.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(AuditLog.objects.filter(acao='financeiro_movimentacao').exists())
        self.assertEqual(FinanceiroConta.objects.get(pk=conta_id).valor_caixa, Decimal('850.00'))

        response = self.client.delete(f"/api/v1/financeiro/movimentacoes/{response.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(FinanceiroConta.objects.get(pk=conta_id).valor_caixa, Decimal('1000.00'))
        self.assertTrue(AuditLog.objects.filter(acao='financeiro_estorno').exists())

    def test_transfer_requires_destination(self):
        conta_id = self._criar_conta().data['id']
        response = self.client.post(f'/api/v1/financeiro/contas/{conta_id}/movimentacoes/',
                                    {'tipo': 'TRANSFERENCIA', 'motivo': 'x', 'valor': '10.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('transferencia_destino', response.data)

    def test_transfer_to_same_account_returns_400(self):
        conta_id = self._criar_conta().data['id']
        response = self.client.post(f'/api/v1/financeiro/contas/{conta_id}/movimentacoes/',
                                    {'tipo': 'TRANSFERENCIA', 'motivo': 'x', 'valor': '10.00',
                                     'transferencia_destino': str(conta_id)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_conta_detail_has_groups_and_destination_names(self):
        origem_id = self._criar_conta().data['id']
        destino_id = self._criar_conta(banco='Nubank', valor_inicial='0').data['id']
        self.client.post(f'/api/v1/financeiro/contas/{origem_id}/movimentacoes/',
                         {'tipo': 'TRANSFERENCIA', 'motivo': 'Repasse', 'valor': '100.00',
                          'transferencia_destino': str(destino_id)}, format='json')

        response = self.client.get(f'/api/v1/financeiro/contas/{origem_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['caixa_percentual'], 100)
        self.assertEqual(response.data['grupos'][0]['titulo'], 'Hoje')
        nomes = [m['destino_nome'] for m in response.data['grupos'][0]['movimentacoes']]
        self.assertIn('Nubank', nomes)

    def test_movimentacao_list_filters(self):
        conta_id = self._criar_conta().data['id']
        self._criar_conta(banco='Inter')
        response = self.client.get(f'/api/v1/financeiro/movimentacoes/?conta={conta_id}')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['conta']['id'], conta_id)
        response = self.client.get('/api/v1/financeiro/movimentacoes/?tipo=SAIDA')
        self.assertEqual(len(response.data), 0)

    def test_resumo_and_meta(self):
        self._criar_conta()
        response = self.client.put('/api/v1/financeiro/meta/', {'meta': '4000.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(AuditLog.objects.filter(entidade='Setting', entidade_id='financeiro_meta').exists())

        response = self.client.get('/api/v1/financeiro/resumo/')
        self.assertEqual(response.data['total_disponivel'], '1000.00')
        self.assertEqual(response.data['meta_percentual'], 25)
        self.assertEqual(response.data['meta_faltante'], '3000.00')

    def test_almoxarife_is_read_only(self):
        conta_id = self._criar_conta().data['id']
        self.client.authenticate_user(TestDataFactory.create_user(role='ALMOXARIFE'))

        self.assertEqual(self.client.get('/api/v1/financeiro/contas/').status_code, status.HTTP_200_OK)
        self.assertEqual(self._criar_conta().status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post(f'/api/v1/financeiro/contas/{conta_id}/movimentacoes/',
                                    {'tipo': 'ENTRADA', 'motivo': 'x', 'valor': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.put('/api/v1/financeiro/meta/', {'meta': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
