"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from construcaopro.catalog.models import Categoria, Material
from construcaopro.financeiro.models import FinanceiroConta
from construcaopro.fiscal.models import NotaFiscal, ItemNF
from construcaopro.obras.models import Obra, Almoxarifado, UsuarioObra
from construcaopro.parties.models import Fornecedor

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def random_digits(length):
        return ''.join(random.choices(string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='VISUALIZADOR', is_superuser=False, nome=None):
        """Create a test user with the given role"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            nome=nome or username,
            is_staff=is_superuser,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_obra(nome=None, status='ATIVA', orcamento=None, **kwargs):
        """Create a test obra"""
        if not nome:
            nome = f'Obra_{TestDataFactory.random_string(6)}'
        return Obra.objects.create(
            nome=nome,
            endereco=kwargs.pop('endereco', f'Rua Teste, 100 - {nome}'),
            status=status,
            orcamento=orcamento if orcamento is not None else Decimal('0.00'),
            **kwargs
        )

    @staticmethod
    def create_almoxarifado(obra=None, nome=None):
        """Create a test almoxarifado; pass obra=None for one without obra"""
        if not nome:
            nome = f'Almox_{TestDataFactory.random_string(6)}'
        return Almoxarifado.objects.create(nome=nome, obra=obra)

    @staticmethod
    def create_categoria(nome=None, unidade='UN'):
        """Create a test categoria"""
        if not nome:
            nome = f'Categoria_{TestDataFactory.random_string(6)}'
        return Categoria.objects.create(nome=nome, unidade=unidade)

    @staticmethod
    def create_material(nome=None, codigo=None, categoria=None, estoque_minimo=None, preco_unitario=None,
                        codigo_barras=None):
        """Create a test material"""
        if not nome:
            nome = f'Material_{TestDataFactory.random_string(6)}'
        if not codigo:
            codigo = f'MAT_{TestDataFactory.random_string(8).upper()}'
        if not categoria:
            categoria = TestDataFactory.create_categoria()
        return Material.objects.create(
            nome=nome,
            codigo=codigo,
            codigo_barras=codigo_barras,
            categoria=categoria,
            estoque_minimo=estoque_minimo if estoque_minimo is not None else Decimal('0'),
            preco_unitario=preco_unitario if preco_unitario is not None else Decimal('0.00'),
        )

    @staticmethod
    def create_fornecedor(nome=None, cnpj=None, **kwargs):
        """Create a test fornecedor"""
        if not nome:
            nome = f'Fornecedor_{TestDataFactory.random_string(6)}'
        return Fornecedor.objects.create(nome=nome, cnpj=cnpj, **kwargs)

    @staticmethod
    def create_nota_fiscal(status='PROCESSADA', fornecedor=None, itens=None, chave_acesso=None, numero=None):
        """
        Create a test nota fiscal.
        itens: list of dicts with descricao, quantidade, valor_unitario and optional material
        """
        nota = NotaFiscal.objects.create(
            numero=numero or TestDataFactory.random_digits(6),
            serie='1',
            chave_acesso=chave_acesso or TestDataFactory.random_digits(44),
            cnpj_emitente=fornecedor.cnpj if fornecedor and fornecedor.cnpj else TestDataFactory.random_digits(14),
            nome_emitente=fornecedor.nome if fornecedor else 'Emitente Teste',
            data_emissao=timezone.now(),
            status=status,
            fornecedor=fornecedor,
        )
        total = Decimal('0.00')
        for item in itens or []:
            quantidade = Decimal(str(item['quantidade']))
            valor_unitario = Decimal(str(item['valor_unitario']))
            valor_total = (quantidade * valor_unitario).quantize(Decimal('0.01'))
            ItemNF.objects.create(
                nota_fiscal=nota,
                descricao=item.get('descricao', 'Item teste'),
                quantidade=quantidade,
                unidade=item.get('unidade', 'UN'),
                valor_unitario=valor_unitario,
                valor_total=valor_total,
                material=item.get('material'),
            )
            total += valor_total
        if total:
            nota.valor_total = total
            nota.save(update_fields=['valor_total'])
        return nota

    @staticmethod
    def create_conta(banco=None, valor_caixa=None, valor_aplicado=None):
        """Create a bank account with raw balances (no movement history)"""
        return FinanceiroConta.objects.create(
            banco=banco or f'Banco_{TestDataFactory.random_string(4)}',
            agencia='0001',
            numero_conta=TestDataFactory.random_digits(6),
            valor_caixa=valor_caixa if valor_caixa is not None else Decimal('0.00'),
            valor_aplicado=valor_aplicado if valor_aplicado is not None else Decimal('0.00'),
        )

    @staticmethod
    def link_user_obra(user, obra):
        """Give a user access to an obra"""
        link, _ = UsuarioObra.objects.get_or_create(usuario=user, obra=obra)
        return link


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
