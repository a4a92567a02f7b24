"""
NF-e import and linking to stock
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import Q

from construcaopro.catalog.models import Material
from construcaopro.core.exceptions import NotaFiscalError
from construcaopro.inventory.services import criar_movimentacao_entrada
from construcaopro.parties.models import Fornecedor
from .models import NotaFiscal, ItemNF
from .nfe import parse_nfe_xml

logger = logging.getLogger('construcaopro.fiscal')


def encontrar_material(codigo, codigo_barras):
    """Match an invoice line to a catalog material by code or barcode"""
    filtros = Q()
    if codigo:
        filtros |= Q(codigo=codigo)
    if codigo_barras:
        filtros |= Q(codigo_barras=codigo_barras)
    if not filtros:
        return None
    return Material.objects.filter(filtros).order_by('id').first()


def importar_nfe(content):
    """Create a PROCESSADA NotaFiscal with its items from NF-e XML content"""
    parsed = parse_nfe_xml(content)

    if NotaFiscal.objects.filter(chave_acesso=parsed.chave_acesso).exists():
        raise NotaFiscalError(f"NF-e com chave {parsed.chave_acesso} já foi importada")

    xml_text = content.decode('utf-8', errors='replace') if isinstance(content, bytes) else content
    fornecedor = Fornecedor.objects.filter(cnpj=parsed.cnpj_emitente).first()

    with transaction.atomic():
        nota = NotaFiscal.objects.create(
            numero=parsed.numero,
            serie=parsed.serie,
            chave_acesso=parsed.chave_acesso,
            cnpj_emitente=parsed.cnpj_emitente,
            nome_emitente=parsed.nome_emitente,
            cnpj_destinatario=parsed.cnpj_destinatario,
            data_emissao=parsed.data_emissao,
            valor_total=parsed.valor_total,
            status='PROCESSADA',
            xml=xml_text,
            fornecedor=fornecedor,
        )
        vinculados = 0
        for item in parsed.itens:
            material = encontrar_material(item.codigo, item.codigo_barras)
            if material:
                vinculados += 1
            ItemNF.objects.create(
                nota_fiscal=nota,
                codigo=item.codigo,
                codigo_barras=item.codigo_barras,
                descricao=item.descricao,
                quantidade=item.quantidade,
                unidade=item.unidade,
                valor_unitario=item.valor_unitario,
                valor_total=item.valor_total,
                ncm=item.ncm,
                cfop=item.cfop,
                material=material,
            )

    logger.info(f"NF-e {nota.chave_acesso} imported with {len(parsed.itens)} items ({vinculados} matched to materials)")
    return nota


def adicionar_item_nota_fiscal(nota, **item_data):
    """Add an item to a note not yet linked; a PENDENTE note becomes PROCESSADA"""
    with transaction.atomic():
        nota = NotaFiscal.objects.select_for_update().get(pk=nota.pk)
        if nota.status not in ('PENDENTE', 'PROCESSADA'):
            raise NotaFiscalError(f"Nota com status {nota.status} não aceita novos itens")

        if item_data.get('valor_total') is None:
            item_data['valor_total'] = (item_data['quantidade'] * item_data['valor_unitario']).quantize(
                Decimal('0.01'), rounding=ROUND_HALF_UP)
        item = ItemNF.objects.create(nota_fiscal=nota, **item_data)

        if nota.status == 'PENDENTE':
            nota.status = 'PROCESSADA'
            nota.save(update_fields=['status', 'updated_at'])

    logger.info(f"Item '{item.descricao}' added to NF {nota.numero} (status {nota.status})")
    return nota, item


def vincular_nota_fiscal(nota, almoxarifado, usuario=None, forma_pagamento=None):
    """Register one ENTRADA per item into the almoxarifado and mark the note VINCULADA"""
    with transaction.atomic():
        nota = NotaFiscal.objects.select_for_update().get(pk=nota.pk)
        if nota.status != 'PROCESSADA':
            raise NotaFiscalError(f"Apenas notas processadas podem ser vinculadas (status atual: {nota.status})")

        itens = list(nota.itens.select_related('material', 'material__categoria'))
        if not itens:
            raise NotaFiscalError("Nota fiscal não possui itens")
        sem_material = [item.descricao for item in itens if item.material_id is None]
        if sem_material:
            raise NotaFiscalError(f"Itens sem material vinculado: {', '.join(sem_material)}")

        movimentacoes = []
        for item in itens:
            movimentacoes.append(criar_movimentacao_entrada(
                material=item.material,
                almoxarifado=almoxarifado,
                quantidade=item.quantidade,
                preco_unitario=item.valor_unitario.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP),
                usuario=usuario,
                fornecedor=nota.fornecedor,
                nota_fiscal=nota,
                observacao=f"NF {nota.numero}",
                unidade=item.unidade,
                forma_pagamento=forma_pagamento,
            ))

        nota.status = 'VINCULADA'
        nota.save(update_fields=['status', 'updated_at'])

    logger.info(f"NF {nota.numero} linked to almoxarifado {almoxarifado.id}: {len(movimentacoes)} entradas")
    return nota, movimentacoes


def rejeitar_nota_fiscal(nota):
    with transaction.atomic():
        nota = NotaFiscal.objects.select_for_update().get(pk=nota.pk)
        if nota.status not in ('PENDENTE', 'PROCESSADA'):
            raise NotaFiscalError(f"Nota com status {nota.status} não pode ser rejeitada")
        nota.status = 'REJEITADA'
        nota.save(update_fields=['status', 'updated_at'])
    logger.info(f"NF {nota.numero} rejected")
    return nota
