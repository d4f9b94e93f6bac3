import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from core.models import Grid, Row


class TabularStore(ABC):
    """
    Contrato (Interface) para a planilha remota de destino.

    Permite trocar a implementação (Google Sheets, fake em memória para
    testes) sem afetar o orquestrador.
    """

    @abstractmethod
    def append(self, sheet_name: str, rows: List[Row]) -> None:
        """
        Insere linhas após o conteúdo existente da aba, sem sobrescrever.

        Raises:
            StoreUnavailableError: Se o cliente não estiver inicializado ou a chamada falhar.
        """
        pass

    @abstractmethod
    def read(self, sheet_name: str) -> Grid:
        """
        Lê a faixa utilizada da aba (colunas A a Z).

        Returns:
            Grid: Linhas da aba; lista vazia se a aba não tiver dados.
        """
        pass

    @abstractmethod
    def update(self, sheet_name: str, cell_range: str, value: str) -> None:
        """Grava um único valor numa célula (ex: "A2")."""
        pass

    @abstractmethod
    def clear(self, sheet_name: str, cell_range: str) -> None:
        """Limpa o conteúdo das células da faixa, mantendo a estrutura."""
        pass


class InvoiceFetcher(ABC):
    """
    Contrato (Interface) para obter o XML de uma NF-e pela chave de acesso.

    O mecanismo concreto (executável externo, biblioteca, serviço remoto)
    fica atrás desta interface.
    """

    @abstractmethod
    def fetch_by_key(
        self,
        chave_acesso: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> bytes:
        """
        Obtém o conteúdo XML da nota.

        Args:
            chave_acesso (str): Chave de acesso da NF-e.
            timeout (Optional[float]): Tempo máximo em segundos.
            cancel_event (Optional[threading.Event]): Sinal de desistência do solicitante.

        Returns:
            bytes: Conteúdo do XML.

        Raises:
            LookupProcessError: Se a consulta falhar.
            ResultNotFoundError: Se a consulta não produzir o XML.
        """
        pass
