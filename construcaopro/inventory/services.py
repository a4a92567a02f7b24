"""
Stock operations.

Every function runs inside a transaction and locks the Estoque rows it
touches, so concurrent movements cannot drive a stock level negative.
Each stock change is written together with exactly one Movimentacao.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import F, Q, Sum
from django.utils import timezone

from construcaopro.core.exceptions import StockError, TransferError
from construcaopro.core.permissions import is_admin, is_gestor_or_above
from .models import Estoque, Movimentacao

logger = logging.getLogger('construcaopro.inventory')

ZERO = Decimal('0')
# Estoque and Movimentacao store 3 decimal places
QUANTIDADE_PRECISAO = Decimal('0.001')


def _validar_quantidade(quantidade):
    quantidade = Decimal(str(quantidade)).quantize(QUANTIDADE_PRECISAO, rounding=ROUND_HALF_UP)
    if quantidade <= ZERO:
        raise StockError("Quantidade deve ser maior que zero")
    return quantidade


def _lock_estoque(almoxarifado, material):
    """Lock (creating when missing) the stock row of a material in an almoxarifado"""
    estoque, created = Estoque.objects.select_for_update().get_or_create(
        almoxarifado=almoxarifado,
        material=material,
        defaults={'quantidade': Decimal('0.000')}
    )
    return estoque


def _somar_estoque(estoque, delta):
    # F() keeps the update atomic at the database level
    Estoque.objects.filter(id=estoque.id).update(quantidade=F('quantidade') + delta, updated_at=timezone.now())
    estoque.refresh_from_db()
    return estoque


def quantidade_disponivel(almoxarifado, material):
    estoque = Estoque.objects.filter(almoxarifado=almoxarifado, material=material).first()
    return estoque.quantidade if estoque else Decimal('0.000')


def criar_movimentacao_entrada(material, almoxarifado, quantidade, preco_unitario=None, usuario=None,
                               fornecedor=None, nota_fiscal=None, observacao=None, unidade=None,
                               forma_pagamento=None):
    """Register material arriving in an almoxarifado and raise its stock"""
    quantidade = _validar_quantidade(quantidade)
    preco_unitario = Decimal(str(preco_unitario)) if preco_unitario is not None else ZERO
    if preco_unitario < ZERO:
        raise StockError("Preço unitário não pode ser negativo")

    with transaction.atomic():
        estoque = _lock_estoque(almoxarifado, material)
        movimentacao = Movimentacao.objects.create(
            tipo='ENTRADA',
            material=material,
            almoxarifado=almoxarifado,
            quantidade=quantidade,
            preco_unitario=preco_unitario,
            unidade=unidade or material.unidade,
            forma_pagamento=forma_pagamento or None,
            fornecedor=fornecedor,
            nota_fiscal=nota_fiscal,
            observacao=observacao or None,
            usuario=usuario,
        )
        _somar_estoque(estoque, quantidade)

        # Last purchase price becomes the material price
        if preco_unitario > ZERO and material.preco_unitario != preco_unitario:
            material.preco_unitario = preco_unitario
            material.save(update_fields=['preco_unitario', 'updated_at'])

    logger.info(f"ENTRADA {quantidade} x {material.codigo} into almoxarifado {almoxarifado.id} (stock now {estoque.quantidade})")
    return movimentacao


def criar_movimentacao_saida(material, almoxarifado, quantidade, preco_unitario=None, usuario=None,
                             observacao=None, unidade=None):
    """Register material leaving an almoxarifado; fails when stock is insufficient"""
    quantidade = _validar_quantidade(quantidade)
    if preco_unitario is None:
        preco_unitario = material.preco_unitario
    preco_unitario = Decimal(str(preco_unitario))

    with transaction.atomic():
        estoque = _lock_estoque(almoxarifado, material)
        if quantidade > estoque.quantidade:
            logger.warning(f"SAIDA refused for {material.codigo} at almoxarifado {almoxarifado.id}: requested {quantidade}, available {estoque.quantidade}")
            raise StockError(f"Estoque insuficiente. Disponível: {estoque.quantidade}, solicitado: {quantidade}")

        movimentacao = Movimentacao.objects.create(
            tipo='SAIDA',
            material=material,
            almoxarifado=almoxarifado,
            quantidade=quantidade,
            preco_unitario=preco_unitario,
            unidade=unidade or material.unidade,
            observacao=observacao or None,
            usuario=usuario,
        )
        _somar_estoque(estoque, -quantidade)

    logger.info(f"SAIDA {quantidade} x {material.codigo} from almoxarifado {almoxarifado.id} (stock now {estoque.quantidade})")
    return movimentacao


def criar_movimentacao_transferencia(material, almoxarifado, almoxarifado_destino, quantidade, usuario=None,
                                     observacao=None, unidade=None):
    """Request a transfer; stock only moves on final approval"""
    quantidade = _validar_quantidade(quantidade)
    if almoxarifado_destino is None:
        raise TransferError("Almoxarifado de destino é obrigatório")
    if almoxarifado.pk == almoxarifado_destino.pk:
        raise TransferError("Origem e destino devem ser diferentes")

    with transaction.atomic():
        estoque = _lock_estoque(almoxarifado, material)
        if quantidade > estoque.quantidade:
            raise StockError(f"Estoque insuficiente na origem. Disponível: {estoque.quantidade}, solicitado: {quantidade}")

        movimentacao = Movimentacao.objects.create(
            tipo='TRANSFERENCIA',
            material=material,
            almoxarifado=almoxarifado,
            almoxarifado_destino=almoxarifado_destino,
            quantidade=quantidade,
            preco_unitario=material.preco_unitario,
            unidade=unidade or material.unidade,
            observacao=observacao or None,
            status_transferencia='PENDENTE',
            usuario=usuario,
        )

    logger.info(f"TRANSFERENCIA {movimentacao.id} requested: {quantidade} x {material.codigo} from {almoxarifado.id} to {almoxarifado_destino.id}")
    return movimentacao


def _lock_transferencia(movimentacao):
    movimentacao = Movimentacao.objects.select_for_update().get(pk=movimentacao.pk)
    if movimentacao.tipo != 'TRANSFERENCIA':
        raise TransferError("Movimentação não é uma transferência")
    return movimentacao


def aprovar_transferencia(movimentacao, usuario):
    """
    Advance a transfer one approval level.

    PENDENTE -> APROVADA_NIVEL_1 needs GESTOR; APROVADA_NIVEL_1 -> APROVADA
    needs ADMIN and is the step that moves stock from origin to destination.
    """
    with transaction.atomic():
        movimentacao = _lock_transferencia(movimentacao)
        now = timezone.now()

        if movimentacao.status_transferencia == 'PENDENTE':
            if not is_gestor_or_above(usuario):
                raise PermissionDenied("Apenas gestores podem aprovar transferências")
            movimentacao.status_transferencia = 'APROVADA_NIVEL_1'
            movimentacao.aprovado_nivel_1_por = usuario
            movimentacao.aprovado_nivel_1_em = now
            movimentacao.save(update_fields=['status_transferencia', 'aprovado_nivel_1_por', 'aprovado_nivel_1_em'])
            logger.info(f"TRANSFERENCIA {movimentacao.id} approved level 1 by {usuario}")
            return movimentacao

        if movimentacao.status_transferencia == 'APROVADA_NIVEL_1':
            if not is_admin(usuario):
                raise PermissionDenied("Apenas administradores podem dar a aprovação final")

            # Lock both rows in a stable order
            ordem = sorted([movimentacao.almoxarifado, movimentacao.almoxarifado_destino], key=lambda a: a.pk)
            estoques = {a.pk: _lock_estoque(a, movimentacao.material) for a in ordem}
            origem = estoques[movimentacao.almoxarifado_id]
            destino = estoques[movimentacao.almoxarifado_destino_id]

            if movimentacao.quantidade > origem.quantidade:
                raise StockError(f"Estoque insuficiente na origem. Disponível: {origem.quantidade}, solicitado: {movimentacao.quantidade}")

            _somar_estoque(origem, -movimentacao.quantidade)
            _somar_estoque(destino, movimentacao.quantidade)

            movimentacao.status_transferencia = 'APROVADA'
            movimentacao.aprovado_por = usuario
            movimentacao.aprovado_em = now
            movimentacao.save(update_fields=['status_transferencia', 'aprovado_por', 'aprovado_em'])
            logger.info(f"TRANSFERENCIA {movimentacao.id} approved by {usuario}; stock moved")
            return movimentacao

    raise TransferError(f"Transferência com status {movimentacao.status_transferencia} não pode ser aprovada")


def rejeitar_transferencia(movimentacao, usuario, motivo=None):
    """Reject a pending or level-1 approved transfer; stock is untouched"""
    if not is_gestor_or_above(usuario):
        raise PermissionDenied("Apenas gestores podem rejeitar transferências")

    with transaction.atomic():
        movimentacao = _lock_transferencia(movimentacao)
        if movimentacao.status_transferencia not in ('PENDENTE', 'APROVADA_NIVEL_1'):
            raise TransferError(f"Transferência com status {movimentacao.status_transferencia} não pode ser rejeitada")
        movimentacao.status_transferencia = 'REJEITADA'
        update_fields = ['status_transferencia']
        if motivo:
            movimentacao.observacao = f"{movimentacao.observacao}\nRejeitada: {motivo}" if movimentacao.observacao else f"Rejeitada: {motivo}"
            update_fields.append('observacao')
        movimentacao.save(update_fields=update_fields)

    logger.info(f"TRANSFERENCIA {movimentacao.id} rejected by {usuario}")
    return movimentacao


def zerar_estoque(estoque, usuario=None):
    """Empty a stock row by registering a SAIDA of everything at the material price"""
    estoque.refresh_from_db()
    if estoque.quantidade <= ZERO:
        raise StockError("Estoque já está zerado")
    return criar_movimentacao_saida(
        material=estoque.material,
        almoxarifado=estoque.almoxarifado,
        quantidade=estoque.quantidade,
        preco_unitario=estoque.material.preco_unitario,
        usuario=usuario,
        observacao='Estoque zerado',
    )


def agrupar_estoque_por_obra(estoques):
    """
    Summarise stock rows per obra.

    Returns {'obras': [...], 'totais': {...}} with obras sorted by name and
    rows whose almoxarifado has no obra grouped under "Sem Obra".
    """
    grupos = {}
    for estoque in estoques:
        obra = estoque.almoxarifado.obra
        chave = obra.id if obra else None
        grupo = grupos.get(chave)
        if grupo is None:
            grupo = grupos[chave] = {
                'obra_id': chave,
                'obra_nome': obra.nome if obra else 'Sem Obra',
                'total_itens': 0,
                'total_quantidade': Decimal('0'),
                'custo_total': Decimal('0'),
                'estoque_baixo': 0,
                '_almoxarifados': set(),
            }
        grupo['total_itens'] += 1
        grupo['total_quantidade'] += estoque.quantidade
        grupo['custo_total'] += estoque.quantidade * estoque.material.preco_unitario
        if estoque.estoque_baixo:
            grupo['estoque_baixo'] += 1
        grupo['_almoxarifados'].add(estoque.almoxarifado_id)

    obras = []
    for grupo in sorted(grupos.values(), key=lambda g: g['obra_nome'].lower()):
        grupo['almoxarifados'] = len(grupo.pop('_almoxarifados'))
        obras.append(grupo)

    totais = {
        'itens': sum(g['total_itens'] for g in obras),
        'quantidade': sum((g['total_quantidade'] for g in obras), Decimal('0')),
        'custo': sum((g['custo_total'] for g in obras), Decimal('0')),
        'obras': len(obras),
        'estoque_baixo': sum(g['estoque_baixo'] for g in obras),
    }
    return {'obras': obras, 'totais': totais}


def calcular_estoque_esperado(almoxarifado_id=None):
    """
    Fold the movement history into the stock each (almoxarifado, material)
    pair should hold. Only approved transfers count.
    """
    esperado = {}

    def acumular(queryset, campo_almoxarifado, sinal):
        linhas = queryset.order_by().values(campo_almoxarifado, 'material_id').annotate(total=Sum('quantidade'))
        for linha in linhas:
            chave = (linha[campo_almoxarifado], linha['material_id'])
            esperado[chave] = esperado.get(chave, Decimal('0')) + sinal * linha['total']

    movimentacoes = Movimentacao.objects.all()
    if almoxarifado_id:
        movimentacoes = movimentacoes.filter(Q(almoxarifado_id=almoxarifado_id) | Q(almoxarifado_destino_id=almoxarifado_id))

    transferencias = movimentacoes.filter(tipo='TRANSFERENCIA', status_transferencia='APROVADA')
    acumular(movimentacoes.filter(tipo='ENTRADA'), 'almoxarifado_id', 1)
    acumular(movimentacoes.filter(tipo='SAIDA'), 'almoxarifado_id', -1)
    acumular(transferencias, 'almoxarifado_id', -1)
    acumular(transferencias, 'almoxarifado_destino_id', 1)

    if almoxarifado_id:
        esperado = {k: v for k, v in esperado.items() if k[0] == int(almoxarifado_id)}
    return esperado
