"""
Testes para o cliente do Google Sheets.

O recurso do googleapiclient é substituído por MagicMock; nenhum teste
acessa a rede.
"""
import socket
import unittest
from unittest.mock import MagicMock, patch

import httplib2
from googleapiclient.errors import HttpError

from core.exceptions import OperationTimeoutError, StoreUnavailableError
from services.sheets_client import GoogleSheetsStore

SPREADSHEET_ID = "planilha-teste"


def http_error(status: int, message: str) -> HttpError:
    content = ('{"error": {"code": %d, "message": "%s"}}' % (status, message)).encode()
    return HttpError(httplib2.Response({"status": status}), content)


class TestGoogleSheetsStore(unittest.TestCase):
    """Testa os parâmetros enviados à Sheets API."""

    def setUp(self):
        self.service = MagicMock()
        self.values = self.service.spreadsheets.return_value.values.return_value
        self.store = GoogleSheetsStore(self.service, spreadsheet_id=SPREADSHEET_ID)

    def test_append(self):
        rows = [["NF Chave: 123", "", "", ""], ["Widget", 3.0, "789", "1"]]

        self.store.append("NOTA FISCAL", rows)

        self.values.append.assert_called_once_with(
            spreadsheetId=SPREADSHEET_ID,
            range="NOTA FISCAL",
            valueInputOption="USER_ENTERED",
            insertDataOption="INSERT_ROWS",
            body={"values": rows},
        )
        self.values.append.return_value.execute.assert_called_once_with()

    def test_read(self):
        self.values.get.return_value.execute.return_value = {
            "range": "ESTOQUE!A1:Z3",
            "values": [["Produto", "Qtd"], ["Caneta", "10"]],
        }

        grid = self.store.read("ESTOQUE")

        self.values.get.assert_called_once_with(
            spreadsheetId=SPREADSHEET_ID, range="ESTOQUE!A:Z"
        )
        self.assertEqual(grid, [["Produto", "Qtd"], ["Caneta", "10"]])

    def test_read_empty_sheet(self):
        self.values.get.return_value.execute.return_value = {"range": "VAZIA!A1:Z1000"}
        self.assertEqual(self.store.read("VAZIA"), [])

    def test_update(self):
        self.store.update("INVENTORY", "B2", "42")

        self.values.update.assert_called_once_with(
            spreadsheetId=SPREADSHEET_ID,
            range="INVENTORY!B2",
            valueInputOption="USER_ENTERED",
            body={"values": [["42"]]},
        )

    def test_clear(self):
        self.store.clear("NOTA FISCAL", "A2:Z")

        self.values.clear.assert_called_once_with(
            spreadsheetId=SPREADSHEET_ID,
            range="NOTA FISCAL!A2:Z",
            body={},
        )


class TestGoogleSheetsStoreErrors(unittest.TestCase):
    """Testa a tradução de falhas para exceções do projeto."""

    def setUp(self):
        self.service = MagicMock()
        self.values = self.service.spreadsheets.return_value.values.return_value
        self.store = GoogleSheetsStore(self.service, spreadsheet_id=SPREADSHEET_ID)

    def test_service_not_initialized(self):
        store = GoogleSheetsStore(None, spreadsheet_id=SPREADSHEET_ID)

        operacoes = [
            lambda: store.append("NOTA FISCAL", [["x"]]),
            lambda: store.read("NOTA FISCAL"),
            lambda: store.update("NOTA FISCAL", "A1", "x"),
            lambda: store.clear("NOTA FISCAL", "A2:Z"),
        ]
        for operacao in operacoes:
            with self.assertRaises(StoreUnavailableError) as ctx:
                operacao()
            self.assertIn("não inicializado", str(ctx.exception))

    def test_http_error(self):
        erro = http_error(403, "The caller does not have permission")
        self.values.append.return_value.execute.side_effect = erro

        with self.assertRaises(StoreUnavailableError) as ctx:
            self.store.append("NOTA FISCAL", [["x"]])

        self.assertIn("erro ao inserir dados no Sheets", str(ctx.exception))
        self.assertIn("403", str(ctx.exception))
        self.assertIs(ctx.exception.cause, erro)

    def test_read_error_names_sheet(self):
        self.values.get.return_value.execute.side_effect = http_error(400, "Unable to parse range")

        with self.assertRaises(StoreUnavailableError) as ctx:
            self.store.read("INEXISTENTE")
        self.assertIn("INEXISTENTE", str(ctx.exception))

    def test_socket_timeout(self):
        self.values.update.return_value.execute.side_effect = socket.timeout("timed out")

        with self.assertRaises(OperationTimeoutError):
            self.store.update("INVENTORY", "B2", "42")

    def test_connection_error(self):
        self.values.clear.return_value.execute.side_effect = ConnectionRefusedError("recusada")

        with self.assertRaises(StoreUnavailableError) as ctx:
            self.store.clear("NOTA FISCAL", "A2:Z")
        self.assertIn("NOTA FISCAL!A2:Z", str(ctx.exception))


class TestGoogleSheetsStoreHttp(unittest.TestCase):
    """Testa o HTTP autorizado por chamada."""

    def setUp(self):
        self.service = MagicMock()
        self.values = self.service.spreadsheets.return_value.values.return_value
        self.credentials = MagicMock()
        self.store = GoogleSheetsStore(
            self.service,
            spreadsheet_id=SPREADSHEET_ID,
            credentials=self.credentials,
            http_timeout=30,
            maintenance_http_timeout=15,
        )

    @patch("services.sheets_client.google_auth_httplib2.AuthorizedHttp")
    def test_execute_with_own_http(self, mock_authorized_http):
        self.store.update("INVENTORY", "B2", "42")

        args, kwargs = mock_authorized_http.call_args
        self.assertIs(args[0], self.credentials)
        self.values.update.return_value.execute.assert_called_once_with(
            http=mock_authorized_http.return_value
        )

    @patch("services.sheets_client.google_auth_httplib2.AuthorizedHttp")
    def test_append_uses_ingest_timeout(self, mock_authorized_http):
        self.store.append("NOTA FISCAL", [["x"]])

        _, kwargs = mock_authorized_http.call_args
        self.assertEqual(kwargs["http"].timeout, 30)

    @patch("services.sheets_client.google_auth_httplib2.AuthorizedHttp")
    def test_maintenance_calls_use_maintenance_timeout(self, mock_authorized_http):
        self.values.get.return_value.execute.return_value = {}

        self.store.read("ESTOQUE")
        self.store.update("INVENTORY", "B2", "42")
        self.store.clear("NOTA FISCAL", "A2:Z")

        timeouts = [c.kwargs["http"].timeout for c in mock_authorized_http.call_args_list]
        self.assertEqual(timeouts, [15, 15, 15])


if __name__ == '__main__':
    unittest.main()
