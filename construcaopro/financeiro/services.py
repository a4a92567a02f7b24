"""
Account ledger.

Balances are only changed here, in the same transaction that writes or
deletes the movement row, so they always equal the fold of the history.
Negative balances are allowed.
"""
import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from construcaopro.core.exceptions import LedgerError
from construcaopro.core.models import Setting
from construcaopro.obras.models import Obra
from .models import FinanceiroConta, FinanceiroMovimentacao

logger = logging.getLogger('construcaopro.financeiro')

META_SETTING_KEY = 'financeiro_meta'

SUBCONTA_CAMPOS = {
    'CAIXA': 'valor_caixa',
    'APLICADO': 'valor_aplicado',
}

MOTIVO_SALDO_INICIAL = {
    'CAIXA': 'Saldo Inicial (Em Caixa)',
    'APLICADO': 'Saldo Inicial (Aplicações)',
}


def arredondar_percentual(valor):
    """Round half up to an integer percentage"""
    return int(Decimal(valor).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _campo(subconta):
    try:
        return SUBCONTA_CAMPOS[subconta]
    except KeyError:
        raise LedgerError(f"Subconta inválida: {subconta}")


def _somar(conta_id, deltas):
    """Add {field: delta} to an account row with F() expressions"""
    FinanceiroConta.objects.filter(pk=conta_id).update(
        updated_at=timezone.now(),
        **{campo: F(campo) + delta for campo, delta in deltas.items()}
    )


def _conta_destino(movimentacao):
    if movimentacao.tipo != 'TRANSFERENCIA' or movimentacao.is_switch or not movimentacao.transferencia_destino:
        return None
    return FinanceiroConta.objects.filter(pk=movimentacao.transferencia_destino).first()


def _aplicar(movimentacao, sinal):
    """Apply (sinal=1) or revert (sinal=-1) the balance effect of a movement"""
    valor = movimentacao.valor * sinal
    campo = _campo(movimentacao.subconta)

    if movimentacao.tipo == 'ENTRADA':
        _somar(movimentacao.conta_id, {campo: valor})
    elif movimentacao.tipo == 'SAIDA':
        _somar(movimentacao.conta_id, {campo: -valor})
    elif movimentacao.is_switch:
        if movimentacao.subconta == 'CAIXA':
            _somar(movimentacao.conta_id, {'valor_caixa': -valor, 'valor_aplicado': valor})
        else:
            _somar(movimentacao.conta_id, {'valor_aplicado': -valor, 'valor_caixa': valor})
    elif movimentacao.tipo == 'TRANSFERENCIA':
        _somar(movimentacao.conta_id, {campo: -valor})
        destino = _conta_destino(movimentacao)
        if destino is not None:
            _somar(destino.pk, {'valor_caixa': valor})
        else:
            logger.warning(f"Destination account {movimentacao.transferencia_destino} of movement {movimentacao.pk} no longer exists")
    else:
        raise LedgerError(f"Tipo inválido: {movimentacao.tipo}")


def _lock_contas(*ids):
    ids = sorted({int(i) for i in ids if i is not None})
    return {c.pk: c for c in FinanceiroConta.objects.select_for_update().filter(pk__in=ids).order_by('pk')}


def registrar_movimentacao(conta, tipo, subconta, motivo, valor, data=None, destino=None, usuario=None):
    """Write a movement and its balance effect atomically"""
    valor = Decimal(str(valor))
    if valor <= 0:
        raise LedgerError("Valor deve ser maior que zero")
    if tipo not in dict(FinanceiroMovimentacao.TIPO_CHOICES):
        raise LedgerError(f"Tipo inválido: {tipo}")
    _campo(subconta)
    motivo = (motivo or '').strip()
    if not motivo:
        raise LedgerError("Motivo é obrigatório")

    destino_id = None
    if tipo == 'TRANSFERENCIA':
        if not destino:
            raise LedgerError("Destino da transferência é obrigatório")
        destino = str(destino)
        if destino != FinanceiroMovimentacao.SWITCH:
            if not destino.isdigit():
                raise LedgerError("Destino da transferência inválido")
            if int(destino) == conta.pk:
                raise LedgerError("Conta de destino deve ser diferente da origem")
            destino_id = int(destino)
    else:
        destino = None

    with transaction.atomic():
        contas = _lock_contas(conta.pk, destino_id)
        if conta.pk not in contas:
            raise LedgerError("Conta não encontrada")
        if destino_id is not None and destino_id not in contas:
            raise LedgerError("Conta de destino não encontrada")

        movimentacao = FinanceiroMovimentacao.objects.create(
            conta=conta,
            tipo=tipo,
            subconta=subconta,
            motivo=motivo,
            valor=valor,
            data=data or timezone.localdate(),
            transferencia_destino=destino,
            usuario=usuario,
        )
        _aplicar(movimentacao, 1)

    logger.info(f"Financial {tipo} of {valor} on conta {conta.pk} ({subconta}) destino={destino}")
    return movimentacao


def estornar_movimentacao(movimentacao):
    """Revert the balance effect of a movement and delete it"""
    with transaction.atomic():
        movimentacao = FinanceiroMovimentacao.objects.select_for_update().get(pk=movimentacao.pk)
        destino = _conta_destino(movimentacao)
        _lock_contas(movimentacao.conta_id, destino.pk if destino else None)
        _aplicar(movimentacao, -1)
        movimentacao.delete()

    logger.info(f"Financial movement {movimentacao.tipo} of {movimentacao.valor} on conta {movimentacao.conta_id} reversed")
    return movimentacao


def abrir_conta(banco, agencia='', numero_conta='', valor_inicial=None, subconta='CAIXA', usuario=None):
    """Create an account with zero balances and book its opening balance as an ENTRADA"""
    valor_inicial = Decimal(str(valor_inicial or '0'))
    if valor_inicial < 0:
        raise LedgerError("Saldo inicial não pode ser negativo")
    _campo(subconta)

    with transaction.atomic():
        conta = FinanceiroConta.objects.create(banco=banco, agencia=agencia or '', numero_conta=numero_conta or '')
        if valor_inicial > 0:
            registrar_movimentacao(conta, 'ENTRADA', subconta, MOTIVO_SALDO_INICIAL[subconta], valor_inicial,
                                   usuario=usuario)
        conta.refresh_from_db()

    logger.info(f"Conta {conta.pk} ({conta.banco}) opened with {valor_inicial} in {subconta}")
    return conta


def get_meta():
    setting = Setting.objects.filter(key=META_SETTING_KEY).first()
    if setting is None:
        return Decimal('0.00')
    try:
        return Decimal(setting.value)
    except ArithmeticError:
        logger.warning(f"Invalid {META_SETTING_KEY} setting value: {setting.value!r}")
        return Decimal('0.00')


def set_meta(valor):
    valor = Decimal(str(valor))
    if valor < 0:
        raise LedgerError("Meta não pode ser negativa")
    Setting.objects.update_or_create(
        key=META_SETTING_KEY,
        defaults={'value': str(valor), 'description': 'Meta de capital disponível'}
    )
    return valor


def calcular_resumo():
    """Totals across accounts, savings goal progress and land plots on standby"""
    totais = FinanceiroConta.objects.aggregate(caixa=Sum('valor_caixa'), aplicado=Sum('valor_aplicado'))
    total_caixa = totais['caixa'] or Decimal('0.00')
    total_aplicado = totais['aplicado'] or Decimal('0.00')
    total_disponivel = total_caixa + total_aplicado

    meta = get_meta()
    meta_percentual = min(arredondar_percentual(total_disponivel / meta * 100), 100) if meta > 0 else 0

    terrenos = Obra.objects.filter(status='TERRENO')
    valor_terrenos = terrenos.aggregate(total=Sum('valor_terreno'))['total'] or Decimal('0.00')

    return {
        'total_caixa': total_caixa,
        'total_aplicado': total_aplicado,
        'total_disponivel': total_disponivel,
        'contas': FinanceiroConta.objects.count(),
        'meta': meta,
        'meta_percentual': meta_percentual,
        'meta_faltante': max(meta - total_disponivel, Decimal('0.00')) if meta > 0 else Decimal('0.00'),
        'terrenos': {
            'quantidade': terrenos.count(),
            'valor_total': valor_terrenos,
        },
    }


def caixa_percentual(conta):
    total = conta.valor_total
    if total <= 0:
        return 0
    return arredondar_percentual(conta.valor_caixa / total * 100)


def grupo_da_data(data, hoje=None):
    hoje = hoje or timezone.localdate()
    if data == hoje:
        return 'Hoje'
    if data > hoje - timedelta(days=7):
        return 'Esta Semana'
    return 'Anteriores'


GRUPOS_ORDEM = ['Hoje', 'Esta Semana', 'Anteriores']


def agrupar_movimentacoes(movimentacoes, hoje=None):
    """Group movements (already sorted newest first) into Hoje / Esta Semana / Anteriores"""
    grupos = {nome: [] for nome in GRUPOS_ORDEM}
    for movimentacao in movimentacoes:
        grupos[grupo_da_data(movimentacao.data, hoje)].append(movimentacao)
    return [(nome, grupos[nome]) for nome in GRUPOS_ORDEM if grupos[nome]]
