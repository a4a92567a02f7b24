"""
NF-e XML reader

Extracts the header and product lines of an electronic invoice
(layout http://www.portalfiscal.inf.br/nfe). Works for both the bare
<NFe> document and the <nfeProc> envelope returned by SEFAZ.
"""
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.utils import timezone

from construcaopro.core.exceptions import NotaFiscalError

NS = {"ns": "http://www.portalfiscal.inf.br/nfe"}

# cEAN placeholder used when the product has no GTIN
SEM_GTIN = 'SEM GTIN'


@dataclass
class ParsedItem:
    codigo: str
    codigo_barras: str
    descricao: str
    quantidade: Decimal
    unidade: str
    valor_unitario: Decimal
    valor_total: Decimal
    ncm: Optional[str] = None
    cfop: Optional[str] = None


@dataclass
class ParsedNota:
    chave_acesso: str
    numero: str
    serie: str
    data_emissao: datetime
    cnpj_emitente: str
    nome_emitente: str
    cnpj_destinatario: Optional[str]
    valor_total: Decimal
    itens: List[ParsedItem] = field(default_factory=list)


def _decimal(text, campo):
    try:
        return Decimal((text or '0').strip())
    except InvalidOperation:
        raise NotaFiscalError(f"Valor inválido em {campo}: {text}")


def _parse_data(text):
    if not text:
        return timezone.now()
    try:
        value = datetime.fromisoformat(text.strip().replace('Z', '+00:00'))
    except ValueError:
        raise NotaFiscalError(f"Data de emissão inválida: {text}")
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def parse_nfe_xml(content) -> ParsedNota:
    """
    Parse NF-e XML content (bytes or str).
    Raises NotaFiscalError when the document is not a readable NF-e.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise NotaFiscalError(f"XML inválido: {str(e)}")

    inf = root.find('.//ns:infNFe', NS)
    if inf is None:
        raise NotaFiscalError("XML não contém infNFe")

    chave = inf.get('Id', '').replace('NFe', '')
    if len(chave) != 44 or not chave.isdigit():
        raise NotaFiscalError("Chave de acesso ausente ou inválida")

    ide = inf.find('ns:ide', NS)
    if ide is None:
        raise NotaFiscalError("XML sem elemento ide")

    dh_emi = ide.findtext('ns:dhEmi', default='', namespaces=NS) or ide.findtext('ns:dEmi', default='', namespaces=NS)

    emit = inf.find('ns:emit', NS)
    if emit is None:
        raise NotaFiscalError("XML sem emitente")
    cnpj_emitente = emit.findtext('ns:CNPJ', default='', namespaces=NS)
    if not cnpj_emitente:
        raise NotaFiscalError("Emitente sem CNPJ")

    dest = inf.find('ns:dest', NS)
    cnpj_destinatario = None
    if dest is not None:
        cnpj_destinatario = dest.findtext('ns:CNPJ', default='', namespaces=NS) or None

    nota = ParsedNota(
        chave_acesso=chave,
        numero=ide.findtext('ns:nNF', default='', namespaces=NS),
        serie=ide.findtext('ns:serie', default='', namespaces=NS),
        data_emissao=_parse_data(dh_emi),
        cnpj_emitente=cnpj_emitente,
        nome_emitente=emit.findtext('ns:xNome', default='', namespaces=NS),
        cnpj_destinatario=cnpj_destinatario,
        valor_total=_decimal(inf.findtext('ns:total/ns:ICMSTot/ns:vNF', default='0', namespaces=NS), 'vNF'),
    )

    for det in inf.findall('ns:det', NS):
        prod = det.find('ns:prod', NS)
        if prod is None:
            continue
        codigo_barras = prod.findtext('ns:cEAN', default='', namespaces=NS).strip()
        if codigo_barras.upper() == SEM_GTIN:
            codigo_barras = ''
        nota.itens.append(ParsedItem(
            codigo=prod.findtext('ns:cProd', default='', namespaces=NS).strip(),
            codigo_barras=codigo_barras,
            descricao=prod.findtext('ns:xProd', default='', namespaces=NS).strip(),
            quantidade=_decimal(prod.findtext('ns:qCom', namespaces=NS), 'qCom'),
            unidade=prod.findtext('ns:uCom', default='UN', namespaces=NS).strip().upper(),
            valor_unitario=_decimal(prod.findtext('ns:vUnCom', namespaces=NS), 'vUnCom'),
            valor_total=_decimal(prod.findtext('ns:vProd', namespaces=NS), 'vProd'),
            ncm=prod.findtext('ns:NCM', namespaces=NS),
            cfop=prod.findtext('ns:CFOP', namespaces=NS),
        ))

    if not nota.itens:
        raise NotaFiscalError("NF-e sem itens")
    return nota
