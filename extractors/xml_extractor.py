"""
Extrator de linhas de planilha a partir de XML de NF-e.

Este módulo converte o XML de processo de uma NF-e (modelo 55) na chave de
acesso da nota e nas linhas que vão para a aba NOTA FISCAL.

Estrutura XML NF-e (apenas o que é lido):
    <nfeProc>
        <NFe>
            <infNFe Id="NFe<chave>">
                <det nItem="1">
                    <prod>
                        <cProd>...</cProd>    # Código do produto
                        <cEAN>...</cEAN>      # Código de barras
                        <xProd>...</xProd>    # Descrição
                        <qCom>...</qCom>      # Quantidade comercial
                    </prod>
                </det>
            </infNFe>
        </NFe>
    </nfeProc>

Linhas geradas (4 colunas):
    ["NF Chave: <chave>", "", "", ""]                  # cabeçalho da nota
    [descrição, quantidade, EAN, item]                 # um por det
"""
import logging
import re
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple, Union

from core.duplicate_tracker import DuplicateTracker
from core.exceptions import (
    DuplicateInvoiceError,
    MalformedDocumentError,
    MissingKeyError,
)
from core.models import NfeDocument, NfeItem, Row

logger = logging.getLogger(__name__)

CHAVE_PREFIX = "NFe"


class NfeRowExtractor:
    """
    Extrai a chave e as linhas de planilha de um XML de NF-e.

    A verificação de duplicidade apenas consulta o DuplicateTracker; quem
    registra a chave é o orquestrador, depois da gravação na planilha.

    Args:
        tracker: Controle de duplicidade consultado em extract(). Se None,
                 nenhuma nota é considerada duplicada.
    """

    def __init__(self, tracker: Optional[DuplicateTracker] = None):
        self.tracker = tracker

    def extract(self, xml_content: Union[str, bytes]) -> Tuple[List[Row], str]:
        """
        Converte o XML em linhas e verifica duplicidade.

        Args:
            xml_content: Conteúdo do XML (texto ou bytes)

        Returns:
            Tuple[List[Row], str]: Linhas (cabeçalho + itens) e a chave da nota

        Raises:
            MalformedDocumentError: Se o conteúdo não for um nfeProc válido
            MissingKeyError: Se a chave estiver vazia
            DuplicateInvoiceError: Se a chave já tiver sido importada
        """
        document = self.parse(xml_content)

        if self.tracker is not None and self.tracker.contains(document.chave_acesso):
            raise DuplicateInvoiceError(document.chave_acesso)

        return document.to_sheets_rows(), document.chave_acesso

    def parse(self, xml_content: Union[str, bytes]) -> NfeDocument:
        """
        Faz o parse do XML sem consultar o controle de duplicidade.

        Raises:
            MalformedDocumentError: Se o conteúdo não for um nfeProc válido
            MissingKeyError: Se a chave estiver vazia
        """
        if isinstance(xml_content, bytes):
            xml_content = self._decode(xml_content)

        # Remove BOM se presente
        xml_content = (xml_content or "").lstrip("\ufeff").strip()

        # Remove namespaces do XML para facilitar parsing
        xml_content = self._remove_namespaces(xml_content)

        try:
            root = ET.fromstring(xml_content)
        except ET.ParseError as e:
            logger.warning(f"Erro de XML parse: {e}")
            raise MalformedDocumentError(
                "erro ao fazer parse do XML. Verifique se o conteúdo é um XML NF-e válido: "
                f"{e}"
            ) from e

        self._strip_tag_namespaces(root)

        if root.tag != "nfeProc":
            raise MalformedDocumentError(
                "erro ao fazer parse do XML. Verifique se o conteúdo é um XML NF-e válido: "
                f"elemento raiz esperado <nfeProc>, encontrado <{root.tag}>"
            )

        inf_nfe = root.find("NFe/infNFe")

        chave = inf_nfe.get("Id", "") if inf_nfe is not None else ""
        chave = chave.strip()
        if chave.startswith(CHAVE_PREFIX):
            chave = chave[len(CHAVE_PREFIX):]
        if not chave:
            raise MissingKeyError("chave da nota fiscal (Id) não encontrada no XML")

        itens = []
        if inf_nfe is not None:
            for det in inf_nfe.findall("det"):
                itens.append(self._parse_item(det))

        return NfeDocument(chave_acesso=chave, itens=itens)

    # ==================== Métodos Auxiliares ====================

    def _parse_item(self, det: ET.Element) -> NfeItem:
        """Converte um elemento det em NfeItem."""
        prod = det.find("prod")
        if prod is None:
            prod = ET.Element("prod")

        qcom = self._get_element_text(prod, "qCom")
        return NfeItem(
            numero_item=det.get("nItem", ""),
            descricao=self._get_element_text(prod, "xProd"),
            codigo_barras=self._get_element_text(prod, "cEAN"),
            quantidade=self._parse_quantidade(qcom),
            codigo_produto=self._get_element_text(prod, "cProd"),
        )

    def _decode(self, raw: bytes) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            # Tenta com encoding alternativo
            return raw.decode("latin-1")

    def _remove_namespaces(self, xml_content: str) -> str:
        """
        Remove namespaces do XML para facilitar o parsing.

        Isso simplifica muito a busca por elementos, já que não precisamos
        lidar com variações de namespace entre diferentes emissores.
        """
        # Remove declarações xmlns (aspas simples ou duplas, espaços ao redor do =)
        xml_content = re.sub(r"\sxmlns(:\w+)?\s*=\s*(\"[^\"]*\"|'[^']*')", "", xml_content)
        # Remove atributos prefixados (ex: xsi:schemaLocation)
        xml_content = re.sub(r"\s\w+:\w+\s*=\s*(\"[^\"]*\"|'[^']*')", "", xml_content)
        # Remove prefixos de namespace (ex: nfe:, ns1:)
        xml_content = re.sub(r"<(/?)[\w]+:", r"<\1", xml_content)
        return xml_content

    def _strip_tag_namespaces(self, root: ET.Element) -> None:
        """Reduz as tags ao nome local ({ns}nfeProc -> nfeProc)."""
        for elem in root.iter():
            if isinstance(elem.tag, str) and "}" in elem.tag:
                elem.tag = elem.tag.split("}", 1)[1]

    def _get_element_text(self, parent: ET.Element, tag: str) -> str:
        """Obtém texto de um elemento filho direto ("" se ausente)."""
        elem = parent.find(tag)
        if elem is not None and elem.text:
            return elem.text.strip()
        return ""

    def _parse_quantidade(self, value_str: str) -> float:
        """
        Converte a quantidade comercial para float.

        Aceita vírgula decimal ("12,5") e o padrão brasileiro com milhar
        ("1.234,56"). Valor inválido vira 0.0 com aviso no log.
        """
        normalized = value_str.strip()

        # Padrão brasileiro: 1.234,56 -> 1234.56
        if "," in normalized and "." in normalized:
            normalized = normalized.replace(".", "").replace(",", ".")
        elif "," in normalized:
            normalized = normalized.replace(",", ".")

        try:
            return float(normalized)
        except ValueError as e:
            logger.warning(
                f"Aviso: Falha ao converter quantidade '{value_str}' para float. "
                f"Usando 0. Erro: {e}"
            )
            return 0.0


def extract_rows(
    xml_content: Union[str, bytes], tracker: Optional[DuplicateTracker] = None
) -> Tuple[List[Row], str]:
    """
    Função de conveniência para extrair linhas de um XML de NF-e.

    Args:
        xml_content: Conteúdo do XML
        tracker: Controle de duplicidade (opcional)

    Returns:
        Tuple[List[Row], str]: Linhas e chave da nota
    """
    extractor = NfeRowExtractor(tracker)
    return extractor.extract(xml_content)
