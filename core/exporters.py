"""
Módulo de exportação de dados lidos da planilha.

Gera uma cópia local (CSV) de uma aba, útil para conferência offline ou
backup antes de uma limpeza da aba NOTA FISCAL.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import pandas as pd

from core.models import Grid


class GridExporter(ABC):
    """
    Interface abstrata para exportadores de um grid da planilha.
    """

    @abstractmethod
    def export(self, grid: Grid, destination: Union[str, Path]) -> None:
        """
        Exporta o grid para um destino.

        Args:
            grid: Linhas lidas da aba (a primeira é o cabeçalho)
            destination: Caminho ou identificador do destino
        """
        pass


class CsvExporter(GridExporter):
    """
    Exportador para formato CSV usando pandas.

    A Sheets API omite células vazias no fim das linhas; o grid é
    completado até a largura do cabeçalho (ou da maior linha).
    """

    def to_dataframe(self, grid: Grid) -> pd.DataFrame:
        """
        Converte o grid em DataFrame usando a primeira linha como cabeçalho.

        Raises:
            ValueError: Se o grid estiver vazio
        """
        if not grid:
            raise ValueError("Aba vazia. Nada para exportar.")

        width = max(len(row) for row in grid)
        header = [str(c) if str(c) else f"COL_{i + 1}" for i, c in enumerate(grid[0])]
        header += [f"COL_{i + 1}" for i in range(len(header), width)]

        rows = [list(row) + [""] * (width - len(row)) for row in grid[1:]]
        return pd.DataFrame(rows, columns=header)

    def export(self, grid: Grid, destination: Union[str, Path]) -> None:
        """
        Exporta o grid para arquivo CSV.

        Raises:
            ValueError: Se o grid estiver vazio
            OSError: Se houver erro ao salvar o arquivo
        """
        df = self.to_dataframe(grid)
        df.to_csv(
            destination,
            index=False,
            encoding='utf-8-sig',  # BOM para Excel no Windows
            sep=';',
        )
