"""
Cliente da planilha remota (Google Sheets API v4).

Implementa as quatro operações usadas pelo sistema sobre uma planilha fixa:
inserir linhas (append), ler uma aba, atualizar uma célula e limpar uma faixa.

O transporte HTTP padrão do googleapiclient (httplib2) não é thread-safe.
Como as requisições chegam em paralelo, cada chamada executa com um objeto
HTTP autorizado próprio, com timeout de socket.
"""
import logging
import socket
from typing import Any, List, Optional

import google_auth_httplib2
import httplib2
from googleapiclient.errors import HttpError

from config import settings
from core.exceptions import OperationTimeoutError, StoreUnavailableError
from core.interfaces import TabularStore
from core.models import Grid, Row

logger = logging.getLogger(__name__)

# Entrada interpretada como se fosse digitada pelo usuário (números viram números)
VALUE_INPUT_OPTION = "USER_ENTERED"
# Inserção de novas linhas: nunca sobrescreve conteúdo existente
INSERT_DATA_OPTION = "INSERT_ROWS"


class GoogleSheetsStore(TabularStore):
    """
    Operações de append, leitura, atualização e limpeza numa planilha Google.

    Args:
        service: Recurso do googleapiclient (build("sheets", "v4")). Se None,
                 todas as operações falham com StoreUnavailableError.
        spreadsheet_id: ID da planilha de destino.
        credentials: Credenciais google-auth usadas para criar um HTTP
                 autorizado por chamada. Se None, usa o HTTP do próprio service.
        http_timeout: Timeout de socket (segundos) do append (importação).
        maintenance_http_timeout: Timeout de socket (segundos) de leitura,
                 atualização e limpeza.
    """

    def __init__(
        self,
        service: Any,
        spreadsheet_id: str = settings.SPREADSHEET_ID,
        credentials: Any = None,
        http_timeout: Optional[float] = settings.INGEST_TIMEOUT_SECONDS,
        maintenance_http_timeout: Optional[float] = settings.MAINTENANCE_TIMEOUT_SECONDS,
        read_columns: str = settings.READ_COLUMNS,
    ):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.credentials = credentials
        self.http_timeout = http_timeout
        self.maintenance_http_timeout = maintenance_http_timeout
        self.read_columns = read_columns

    def append(self, sheet_name: str, rows: List[Row]) -> None:
        values = self._values()
        request = values.append(
            spreadsheetId=self.spreadsheet_id,
            range=sheet_name,
            valueInputOption=VALUE_INPUT_OPTION,
            insertDataOption=INSERT_DATA_OPTION,
            body={"values": rows},
        )
        self._execute(request, "erro ao inserir dados no Sheets", self.http_timeout)
        logger.debug(f"{len(rows)} linha(s) inseridas na aba '{sheet_name}'")

    def read(self, sheet_name: str) -> Grid:
        values = self._values()
        read_range = f"{sheet_name}!{self.read_columns}"
        request = values.get(spreadsheetId=self.spreadsheet_id, range=read_range)
        response = self._execute(
            request,
            f"falha ao buscar dados do Sheets para a aba {sheet_name}",
            self.maintenance_http_timeout,
        )
        # A API omite "values" quando a aba está vazia
        return (response or {}).get("values", [])

    def update(self, sheet_name: str, cell_range: str, value: str) -> None:
        values = self._values()
        full_range = f"{sheet_name}!{cell_range}"
        request = values.update(
            spreadsheetId=self.spreadsheet_id,
            range=full_range,
            valueInputOption=VALUE_INPUT_OPTION,
            body={"values": [[value]]},
        )
        self._execute(
            request,
            f"erro ao atualizar Sheets para o range {full_range}",
            self.maintenance_http_timeout,
        )

    def clear(self, sheet_name: str, cell_range: str) -> None:
        values = self._values()
        # Convenção: range a partir de A2 preserva a linha de cabeçalho (A1)
        full_range = f"{sheet_name}!{cell_range}"
        request = values.clear(
            spreadsheetId=self.spreadsheet_id,
            range=full_range,
            body={},
        )
        self._execute(
            request,
            f"erro ao limpar dados no Sheets para o range {full_range}",
            self.maintenance_http_timeout,
        )

    # ==================== Métodos Auxiliares ====================

    def _values(self):
        """Recurso spreadsheets().values(), ou erro se o serviço não existe."""
        if self.service is None:
            raise StoreUnavailableError("serviço do Google Sheets não inicializado")
        return self.service.spreadsheets().values()

    def _new_http(self, timeout: Optional[float]):
        """HTTP autorizado exclusivo da chamada atual."""
        return google_auth_httplib2.AuthorizedHttp(
            self.credentials, http=httplib2.Http(timeout=timeout)
        )

    def _execute(self, request, contexto: str, timeout: Optional[float]) -> Any:
        """
        Executa a requisição traduzindo falhas para exceções do projeto.

        Raises:
            OperationTimeoutError: Se o socket expirar
            StoreUnavailableError: Para qualquer outra falha da chamada
        """
        try:
            if self.credentials is not None:
                return request.execute(http=self._new_http(timeout))
            return request.execute()
        except HttpError as e:
            logger.error(f"{contexto}: {e}")
            raise StoreUnavailableError(f"{contexto}: {e}", cause=e) from e
        except (socket.timeout, TimeoutError) as e:
            logger.error(f"⏱️ {contexto}: tempo limite excedido ({e})")
            raise OperationTimeoutError(
                f"{contexto}: tempo limite excedido na comunicação com o Google Sheets"
            ) from e
        except (httplib2.HttpLib2Error, OSError) as e:
            logger.error(f"{contexto}: {e}")
            raise StoreUnavailableError(f"{contexto}: {e}", cause=e) from e
