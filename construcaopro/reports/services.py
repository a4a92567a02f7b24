"""
Dashboard and per-obra cost aggregation.

Material cost ("custo" / "realizado") of an obra is the sum of
quantidade * preco_unitario over ENTRADA movements into its almoxarifados.
"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from construcaopro.catalog.models import Material
from construcaopro.core.permissions import filter_by_obra_access
from construcaopro.fiscal.models import NotaFiscal
from construcaopro.inventory.models import Estoque, Movimentacao
from construcaopro.obras.models import Obra

ZERO = Decimal('0.00')

VALOR_MOVIMENTACAO = ExpressionWrapper(
    F('quantidade') * F('preco_unitario'),
    output_field=DecimalField(max_digits=28, decimal_places=6)
)

TENDENCIA_MESES = 6
ENTRADAS_RECENTES = 20


def _money(value):
    return (value or ZERO).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def percentual(parte, total):
    """round(parte / total * 100) with halves rounded up; 0 when total is 0"""
    if not total or total <= 0:
        return 0
    return int((Decimal(parte) / Decimal(total) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def nivel_orcamento(pct):
    if pct > 90:
        return 'critico'
    if pct > 70:
        return 'atencao'
    return 'ok'


def _entradas(obra_ids=None):
    entradas = Movimentacao.objects.filter(tipo='ENTRADA', preco_unitario__isnull=False)
    if obra_ids is not None:
        entradas = entradas.filter(almoxarifado__obra_id__in=obra_ids)
    return entradas


def custo_por_obra_ids(obra_ids):
    """Map obra id -> material cost"""
    rows = (
        _entradas(obra_ids)
        .order_by()
        .values('almoxarifado__obra_id')
        .annotate(custo=Sum(VALOR_MOVIMENTACAO))
    )
    return {row['almoxarifado__obra_id']: _money(row['custo']) for row in rows}


def get_dashboard_stats(user):
    obras = filter_by_obra_access(Obra.objects.all(), user, field='id')
    obra_ids = list(obras.values_list('id', flat=True))

    custos = custo_por_obra_ids(obra_ids)
    custo_total = sum(custos.values(), ZERO)
    orcamento_total = _money(obras.aggregate(total=Sum('orcamento'))['total'])
    pct = percentual(custo_total, orcamento_total)

    por_status = dict(obras.order_by().values_list('status').annotate(total=Count('id')))
    obras_por_status = {codigo: por_status.get(codigo, 0) for codigo, _ in Obra.STATUS_CHOICES}

    terrenos = obras.filter(status='TERRENO')
    estoques = filter_by_obra_access(Estoque.objects.all(), user, field='almoxarifado__obra_id')
    movimentacoes = filter_by_obra_access(Movimentacao.objects.all(), user, field='almoxarifado__obra_id')

    return {
        'obras_ativas': obras_por_status.get('ATIVA', 0),
        'total_obras': len(obra_ids),
        'total_materiais': Material.objects.count(),
        'total_movimentacoes': movimentacoes.count(),
        'total_nfs': NotaFiscal.objects.count(),
        'alertas_estoque': estoques.filter(
            material__estoque_minimo__gt=0,
            quantidade__lte=F('material__estoque_minimo')
        ).count(),
        'custo_total': custo_total,
        'orcamento_total': orcamento_total,
        'percentual': pct,
        'nivel_orcamento': nivel_orcamento(pct),
        'obras_por_status': obras_por_status,
        'terrenos': {
            'quantidade': terrenos.count(),
            'valor_total': _money(terrenos.aggregate(total=Sum('valor_terreno'))['total']),
        },
    }


def get_custo_por_obra(user):
    obras = filter_by_obra_access(Obra.objects.all(), user, field='id').order_by('nome')
    custos = custo_por_obra_ids([obra.id for obra in obras])

    resultado = []
    for obra in obras:
        custo = custos.get(obra.id, ZERO)
        pct = percentual(custo, obra.orcamento)
        resultado.append({
            'id': obra.id,
            'obra': obra.nome,
            'endereco': obra.endereco,
            'status': obra.status,
            'custo': custo,
            'orcamento': obra.orcamento,
            'valor_terreno': obra.valor_terreno,
            'valor_burocracia': obra.valor_burocracia,
            'valor_construcao': obra.valor_construcao,
            'valor_venda': obra.valor_venda,
            'percentual': pct,
            'nivel_orcamento': nivel_orcamento(pct),
        })
    return resultado


def _ultimos_meses(hoje, quantidade=TENDENCIA_MESES):
    """First day of the last `quantidade` months, oldest first, current month included"""
    meses = []
    ano, mes = hoje.year, hoje.month
    for _ in range(quantidade):
        meses.append(date(ano, mes, 1))
        mes -= 1
        if mes == 0:
            ano, mes = ano - 1, 12
    return list(reversed(meses))


def get_obra_custos(obra, hoje=None):
    hoje = hoje or timezone.localdate()
    entradas = _entradas([obra.id])

    realizado = _money(entradas.aggregate(total=Sum(VALOR_MOVIMENTACAO))['total'])
    total = obra.valor_terreno + obra.valor_burocracia + obra.valor_construcao + realizado
    pct = percentual(total, obra.orcamento)

    lucro = None
    margem = None
    if obra.status == 'VENDIDO' and obra.valor_venda > 0:
        lucro = obra.valor_venda - total
        margem = (lucro / total * 100).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP) if total > 0 else Decimal('0')

    categorias = (
        entradas.order_by()
        .values('material__categoria_id', 'material__categoria__nome')
        .annotate(valor=Sum(VALOR_MOVIMENTACAO))
    )
    por_categoria = sorted(
        [
            {
                'categoria_id': row['material__categoria_id'],
                'categoria': row['material__categoria__nome'],
                'valor': _money(row['valor']),
                'percentual': percentual(row['valor'] or ZERO, realizado),
            }
            for row in categorias
        ],
        key=lambda item: item['valor'],
        reverse=True,
    )

    meses = _ultimos_meses(hoje)
    mensal = (
        entradas.filter(created_at__date__gte=meses[0])
        .annotate(mes=TruncMonth('created_at'))
        .order_by()
        .values('mes')
        .annotate(valor=Sum(VALOR_MOVIMENTACAO))
    )
    valores_mes = {}
    for row in mensal:
        chave = row['mes'].strftime('%Y-%m')
        valores_mes[chave] = valores_mes.get(chave, ZERO) + _money(row['valor'])
    tendencia = [
        {'mes': mes.strftime('%Y-%m'), 'valor': valores_mes.get(mes.strftime('%Y-%m'), ZERO)}
        for mes in meses
    ]

    entradas_recentes = (
        entradas.select_related('material', 'almoxarifado', 'fornecedor')
        .order_by('-created_at')[:ENTRADAS_RECENTES]
    )

    estoques = (
        Estoque.objects.filter(almoxarifado__obra=obra, quantidade__gt=0)
        .select_related('material', 'material__categoria', 'almoxarifado')
        .order_by('material__nome')
    )
    por_material = [
        {
            'material_id': estoque.material_id,
            'material': estoque.material.nome,
            'almoxarifado': estoque.almoxarifado.nome,
            'unidade': estoque.material.unidade,
            'quantidade': estoque.quantidade,
            'preco_unitario': estoque.material.preco_unitario,
            'subtotal': _money(estoque.quantidade * estoque.material.preco_unitario),
        }
        for estoque in estoques
    ]

    return {
        'obra_id': obra.id,
        'obra': obra.nome,
        'status': obra.status,
        'orcamento': obra.orcamento,
        'valor_terreno': obra.valor_terreno,
        'valor_burocracia': obra.valor_burocracia,
        'valor_construcao': obra.valor_construcao,
        'valor_venda': obra.valor_venda,
        'realizado': realizado,
        'total': total,
        'percentual': pct,
        'saldo': obra.orcamento - total,
        'nivel_orcamento': nivel_orcamento(pct),
        'lucro': lucro,
        'margem': margem,
        'por_categoria': por_categoria,
        'tendencia': tendencia,
        'entradas': [
            {
                'id': mov.id,
                'data': mov.created_at,
                'material': mov.material.nome,
                'almoxarifado': mov.almoxarifado.nome,
                'fornecedor': mov.fornecedor.nome if mov.fornecedor else None,
                'quantidade': mov.quantidade,
                'preco_unitario': mov.preco_unitario,
                'valor_total': _money(mov.valor_total),
            }
            for mov in entradas_recentes
        ],
        'por_material': por_material,
    }
