from dataclasses import dataclass, field
from typing import List, Union

# Uma célula da planilha é texto ou número; a quantidade é sempre numérica.
CellValue = Union[str, float]
Row = List[CellValue]
Grid = List[List[CellValue]]

HEADER_PREFIX = "NF Chave: "


@dataclass
class NfeItem:
    """
    Item (det) de uma NF-e, já normalizado.

    Attributes:
        numero_item (str): Atributo nItem do det (posição na nota).
        descricao (str): Descrição do produto (xProd).
        codigo_barras (str): Código de barras (cEAN), pode ser vazio.
        quantidade (float): Quantidade comercial (qCom) já convertida.
        codigo_produto (str): Código do produto (cProd). Não vai para a planilha.
    """
    numero_item: str
    descricao: str = ""
    codigo_barras: str = ""
    quantidade: float = 0.0
    codigo_produto: str = ""

    def to_sheets_row(self) -> Row:
        """
        Converte o item para a linha de detalhe da aba NOTA FISCAL.

        Ordem: DESCRIÇÃO, QUANTIDADE, EAN, ITEM

        Returns:
            list: Lista com 4 elementos para inserção direta no Google Sheets
        """
        return [self.descricao, self.quantidade, self.codigo_barras, self.numero_item]


@dataclass
class NfeDocument:
    """
    Nota fiscal extraída do XML: chave de acesso e itens em ordem do documento.

    Attributes:
        chave_acesso (str): Chave da nota (Id do infNFe sem o prefixo "NFe").
        itens (List[NfeItem]): Itens na ordem em que aparecem no XML.
    """
    chave_acesso: str
    itens: List[NfeItem] = field(default_factory=list)

    def header_row(self) -> Row:
        """Linha de cabeçalho que agrupa os itens da nota na planilha."""
        return [f"{HEADER_PREFIX}{self.chave_acesso}", "", "", ""]

    def to_sheets_rows(self) -> List[Row]:
        """
        Converte a nota para as linhas da planilha.

        Returns:
            List[list]: Cabeçalho seguido de uma linha por item (N+1 linhas)
        """
        rows = [self.header_row()]
        rows.extend(item.to_sheets_row() for item in self.itens)
        return rows
