"""
Test suite for fiscal module
Tests: NF-e XML parsing, import, manual registration, material linking, vincular/rejeitar
"""
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import DatabaseError
from django.db.models import Sum
from django.test import TestCase
from rest_framework import status

from construcaopro.core.exceptions import NotaFiscalError
from construcaopro.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from construcaopro.fiscal import services
from construcaopro.fiscal.models import NotaFiscal, ItemNF
from construcaopro.fiscal.nfe import parse_nfe_xml
from construcaopro.inventory.models import Estoque, Movimentacao

CHAVE = '35240112345678000190550010000012341000012345'

NFE_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<nfeProc xmlns="http://www.portalfiscal.inf.br/nfe" versao="4.00">
  <NFe>
    <infNFe Id="NFe{CHAVE}" versao="4.00">
      <ide>
        <serie>1</serie>
        <nNF>1234</nNF>
        <dhEmi>2024-01-15T10:30:00-03:00</dhEmi>
      </ide>
      <emit>
        <CNPJ>12345678000190</CNPJ>
        <xNome>Depósito de Materiais Ltda</xNome>
      </emit>
      <dest>
        <CNPJ>98765432000110</CNPJ>
      </dest>
      <det nItem="1">
        <prod>
          <cProd>CIM50</cProd>
          <cEAN>7891234567895</cEAN>
          <xProd>Cimento CP II 50kg</xProd>
          <NCM>25232910</NCM>
          <CFOP>5102</CFOP>
          <uCom>sc</uCom>
          <qCom>10.0000</qCom>
          <vUnCom>32.5000</vUnCom>
          <vProd>325.00</vProd>
        </prod>
      </det>
      <det nItem="2">
        <prod>
          <cProd>AREIA</cProd>
          <cEAN>SEM GTIN</cEAN>
          <xProd>Areia Média</xProd>
          <uCom>M3</uCom>
          <qCom>2.0000</qCom>
          <vUnCom>120.0000</vUnCom>
          <vProd>240.00</vProd>
        </prod>
      </det>
      <total>
        <ICMSTot>
          <vNF>565.00</vNF>
        </ICMSTot>
      </total>
    </infNFe>
  </NFe>
</nfeProc>
"""


class ParseNfeTests(TestCase):
    """Test the NF-e XML reader"""

    def test_parse_header_and_items(self):
        nota = parse_nfe_xml(NFE_XML.encode('utf-8'))
        self.assertEqual(nota.chave_acesso, CHAVE)
        self.assertEqual(nota.numero, '1234')
        self.assertEqual(nota.cnpj_emitente, '12345678000190')
        self.assertEqual(nota.cnpj_destinatario, '98765432000110')
        self.assertEqual(nota.valor_total, Decimal('565.00'))
        self.assertEqual(len(nota.itens), 2)
        self.assertEqual(nota.itens[0].unidade, 'SC')
        self.assertEqual(nota.itens[0].quantidade, Decimal('10.0000'))

    def test_sem_gtin_becomes_empty(self):
        nota = parse_nfe_xml(NFE_XML)
        self.assertEqual(nota.itens[1].codigo_barras, '')

    def test_invalid_xml(self):
        with self.assertRaises(NotaFiscalError):
            parse_nfe_xml(b'<not-xml')

    def test_missing_infnfe(self):
        with self.assertRaises(NotaFiscalError):
            parse_nfe_xml('<NFe xmlns="http://www.portalfiscal.inf.br/nfe"></NFe>')


class ImportarNfeTests(TestCase):
    """Test NF-e import"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def _upload(self, content=NFE_XML):
        arquivo = SimpleUploadedFile('nota.xml', content.encode('utf-8'), content_type='text/xml')
        return self.client.post('/api/v1/notas-fiscais/importar-xml/', {'file': arquivo}, format='multipart')

    def test_import_matches_fornecedor_and_materials(self):
        fornecedor = TestDataFactory.create_fornecedor(cnpj='12345678000190')
        cimento = TestDataFactory.create_material(codigo='OUTRO', codigo_barras='7891234567895')
        areia = TestDataFactory.create_material(codigo='AREIA')

        response = self._upload()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'PROCESSADA')
        self.assertEqual(response.data['fornecedor'], fornecedor.id)
        materiais = [item['material'] for item in response.data['itens']]
        self.assertEqual(materiais, [cimento.id, areia.id])

    def test_duplicate_chave_refused(self):
        self.assertEqual(self._upload().status_code, status.HTTP_201_CREATED)
        response = self._upload()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(NotaFiscal.objects.count(), 1)

    def test_missing_file(self):
        response = self.client.post('/api/v1/notas-fiscais/importar-xml/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_almoxarife_cannot_import(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='ALMOXARIFE'))
        self.assertEqual(self._upload().status_code, status.HTTP_403_FORBIDDEN)


class NotaFiscalManualTests(TestCase):
    """Test manual registration and item linking"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def _payload(self, itens=None):
        data = {
            'numero': '55',
            'serie': '1',
            'chave_acesso': CHAVE,
            'cnpj_emitente': '12.345.678/0001-90',
            'nome_emitente': 'Depósito',
            'data_emissao': '2024-02-01T09:00:00-03:00',
            'valor_total': '100.00',
        }
        if itens is not None:
            data['itens'] = itens
        return data

    def test_manual_without_items_is_pendente(self):
        response = self.client.post('/api/v1/notas-fiscais/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'PENDENTE')
        self.assertEqual(response.data['cnpj_emitente'], '12345678000190')

    def test_manual_with_items_is_processada(self):
        itens = [{'descricao': 'Tijolo', 'quantidade': '1000', 'unidade': 'UN', 'valor_unitario': '0.85'}]
        response = self.client.post('/api/v1/notas-fiscais/', self._payload(itens), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'PROCESSADA')
        self.assertEqual(Decimal(response.data['itens'][0]['valor_total']), Decimal('850.00'))

    def test_invalid_chave(self):
        data = self._payload()
        data['chave_acesso'] = '123'
        response = self.client.post('/api/v1/notas-fiscais/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_link_item_material(self):
        nota = TestDataFactory.create_nota_fiscal(itens=[{'quantidade': 1, 'valor_unitario': 10}])
        item = nota.itens.get()
        material = TestDataFactory.create_material()
        response = self.client.patch(f'/api/v1/notas-fiscais/{nota.id}/itens/{item.id}/',
                                     {'material': material.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item.refresh_from_db()
        self.assertEqual(item.material_id, material.id)

    def test_list_has_item_count(self):
        TestDataFactory.create_nota_fiscal(itens=[{'quantidade': 1, 'valor_unitario': 10},
                                                  {'quantidade': 2, 'valor_unitario': 5}])
        response = self.client.get('/api/v1/notas-fiscais/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['itens_count'], 2)

    def test_add_item_to_pendente_makes_it_linkable(self):
        response = self.client.post('/api/v1/notas-fiscais/', self._payload(), format='json')
        nota_id = response.data['id']
        self.assertEqual(response.data['status'], 'PENDENTE')

        item = {'descricao': 'Tijolo', 'quantidade': '100', 'unidade': 'UN', 'valor_unitario': '0.85'}
        response = self.client.post(f'/api/v1/notas-fiscais/{nota_id}/itens/', item, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'PROCESSADA')
        self.assertEqual(len(response.data['itens']), 1)
        self.assertEqual(Decimal(response.data['itens'][0]['valor_total']), Decimal('85.00'))

        material = TestDataFactory.create_material()
        ItemNF.objects.filter(nota_fiscal_id=nota_id).update(material=material)
        almoxarifado = TestDataFactory.create_almoxarifado(obra=TestDataFactory.create_obra())
        nota, movimentacoes = services.vincular_nota_fiscal(NotaFiscal.objects.get(pk=nota_id), almoxarifado)
        self.assertEqual(nota.status, 'VINCULADA')
        self.assertEqual(len(movimentacoes), 1)
        estoque = Estoque.objects.get(almoxarifado=almoxarifado, material=material)
        self.assertEqual(estoque.quantidade, Decimal('100'))

    def test_add_item_to_vinculada_refused(self):
        nota = TestDataFactory.create_nota_fiscal(status='VINCULADA')
        item = {'descricao': 'Areia', 'quantidade': '2', 'unidade': 'M3', 'valor_unitario': '120'}
        response = self.client.post(f'/api/v1/notas-fiscais/{nota.id}/itens/', item, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(nota.itens.exists())

    def test_almoxarife_cannot_add_item(self):
        nota = TestDataFactory.create_nota_fiscal(status='PENDENTE')
        self.client.authenticate_user(TestDataFactory.create_user(role='ALMOXARIFE'))
        item = {'descricao': 'Areia', 'quantidade': '2', 'unidade': 'M3', 'valor_unitario': '120'}
        response = self.client.post(f'/api/v1/notas-fiscais/{nota.id}/itens/', item, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        nota.refresh_from_db()
        self.assertEqual(nota.status, 'PENDENTE')

    def test_failed_item_insert_leaves_no_partial_nota(self):
        itens = [{'descricao': 'Tijolo', 'quantidade': '1000', 'unidade': 'UN', 'valor_unitario': '0.85'},
                 {'descricao': 'Cimento', 'quantidade': '10', 'unidade': 'SC', 'valor_unitario': '32.50'}]
        criar_item = ItemNF.objects.create
        chamadas = []

        def criar_e_falhar(**kwargs):
            if chamadas:
                raise DatabaseError('falha ao gravar item')
            chamadas.append(kwargs)
            return criar_item(**kwargs)

        with mock.patch.object(ItemNF.objects, 'create', side_effect=criar_e_falhar):
            with self.assertRaises(DatabaseError):
                self.client.post('/api/v1/notas-fiscais/', self._payload(itens), format='json')
        self.assertFalse(NotaFiscal.objects.filter(chave_acesso=CHAVE).exists())
        self.assertFalse(ItemNF.objects.exists())


class VincularNotaFiscalTests(TestCase):
    """Test linking a nota fiscal to stock"""

    def setUp(self):
        self.gestor = TestDataFactory.create_user(role='GESTOR')
        self.obra = TestDataFactory.create_obra()
        TestDataFactory.link_user_obra(self.gestor, self.obra)
        self.almoxarifado = TestDataFactory.create_almoxarifado(obra=self.obra)
        self.material = TestDataFactory.create_material()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gestor)

    def test_vincular_creates_entradas(self):
        fornecedor = TestDataFactory.create_fornecedor(cnpj='12345678000190')
        nota = TestDataFactory.create_nota_fiscal(fornecedor=fornecedor, itens=[
            {'quantidade': '10', 'valor_unitario': '32.555', 'material': self.material},
        ])
        response = self.client.post(f'/api/v1/notas-fiscais/{nota.id}/vincular/',
                                    {'almoxarifado': self.almoxarifado.id, 'forma_pagamento': 'PIX'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        nota.refresh_from_db()
        self.assertEqual(nota.status, 'VINCULADA')
        movimentacao = Movimentacao.objects.get(nota_fiscal=nota)
        self.assertEqual(movimentacao.tipo, 'ENTRADA')
        self.assertEqual(movimentacao.preco_unitario, Decimal('32.56'))
        self.assertEqual(movimentacao.fornecedor_id, fornecedor.id)
        self.assertEqual(movimentacao.forma_pagamento, 'PIX')
        estoque = Estoque.objects.get(almoxarifado=self.almoxarifado, material=self.material)
        self.assertEqual(estoque.quantidade, Decimal('10'))

    def test_vincular_requires_all_materials(self):
        nota = TestDataFactory.create_nota_fiscal(itens=[
            {'quantidade': '1', 'valor_unitario': '1', 'material': self.material},
            {'quantidade': '1', 'valor_unitario': '1', 'descricao': 'Sem cadastro'},
        ])
        with self.assertRaises(NotaFiscalError):
            services.vincular_nota_fiscal(nota, self.almoxarifado)
        self.assertFalse(Movimentacao.objects.exists())

    def test_vincular_twice_refused(self):
        nota = TestDataFactory.create_nota_fiscal(itens=[
            {'quantidade': '1', 'valor_unitario': '1', 'material': self.material},
        ])
        services.vincular_nota_fiscal(nota, self.almoxarifado)
        response = self.client.post(f'/api/v1/notas-fiscais/{nota.id}/vincular/',
                                    {'almoxarifado': self.almoxarifado.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Movimentacao.objects.count(), 1)

    def test_vincular_unlinked_obra_forbidden(self):
        outro = TestDataFactory.create_almoxarifado(obra=TestDataFactory.create_obra())
        nota = TestDataFactory.create_nota_fiscal(itens=[
            {'quantidade': '1', 'valor_unitario': '1', 'material': self.material},
        ])
        response = self.client.post(f'/api/v1/notas-fiscais/{nota.id}/vincular/',
                                    {'almoxarifado': outro.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_rejeitar(self):
        nota = TestDataFactory.create_nota_fiscal(status='PENDENTE')
        response = self.client.post(f'/api/v1/notas-fiscais/{nota.id}/rejeitar/', {'motivo': 'Duplicada'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        nota.refresh_from_db()
        self.assertEqual(nota.status, 'REJEITADA')

    def test_cannot_reject_vinculada(self):
        nota = TestDataFactory.create_nota_fiscal(status='VINCULADA')
        with self.assertRaises(NotaFiscalError):
            services.rejeitar_nota_fiscal(nota)

    def test_cannot_delete_vinculada(self):
        nota = TestDataFactory.create_nota_fiscal(status='VINCULADA')
        response = self.client.delete(f'/api/v1/notas-fiscais/{nota.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_fractional_item_quantities_keep_stock_equal_to_movements(self):
        for _ in range(2):
            nota = TestDataFactory.create_nota_fiscal(itens=[
                {'quantidade': '1.2345', 'valor_unitario': '10', 'material': self.material},
            ])
            services.vincular_nota_fiscal(nota, self.almoxarifado)

        estoque = Estoque.objects.get(almoxarifado=self.almoxarifado, material=self.material)
        total = Movimentacao.objects.filter(
            almoxarifado=self.almoxarifado, material=self.material
        ).aggregate(total=Sum('quantidade'))['total']
        self.assertEqual(estoque.quantidade, total)
        self.assertEqual(estoque.quantidade, Decimal('2.470'))

        out = StringIO()
        call_command('check_estoque', stdout=out)
        self.assertIn('No discrepancies found.', out.getvalue())
