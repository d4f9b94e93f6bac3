"""
Script de inicialização do servidor de importação de NF-e.

Etapas:
1.  Garante o diretório de saída dos XMLs (nfes/).
2.  Carrega as credenciais do Google Sheets (arquivo local ou Base64 no ambiente).
3.  Monta cliente da planilha, consulta por chave e orquestrador.
4.  Sobe a API HTTP (uvicorn) na porta configurada.

Qualquer falha nas etapas 1-3 encerra o processo antes de aceitar requisições.

Usage:
    python run_server.py
"""
import logging
import sys

import uvicorn

from config import settings
from api.app import create_app
from core.exceptions import CredentialsError
from ingestors.nfe_lookup import SubprocessInvoiceFetcher
from services.credentials import build_credentials, build_sheets_service, load_credentials_info
from services.sheets_client import GoogleSheetsStore
from services.sync_service import NfeSyncService

logger = logging.getLogger(__name__)


def build_service() -> NfeSyncService:
    """
    Monta o NfeSyncService com as dependências reais.

    Raises:
        CredentialsError: Se as credenciais não forem encontradas ou forem inválidas
        OSError: Se o diretório de saída não puder ser criado
    """
    settings.DIR_NFES.mkdir(parents=True, exist_ok=True)

    credentials = build_credentials(load_credentials_info())
    sheets = build_sheets_service(credentials)
    logger.info("Serviço do Google Sheets inicializado com sucesso.")

    store = GoogleSheetsStore(
        sheets,
        spreadsheet_id=settings.SPREADSHEET_ID,
        credentials=credentials,
        http_timeout=settings.INGEST_TIMEOUT_SECONDS,
        maintenance_http_timeout=settings.MAINTENANCE_TIMEOUT_SECONDS,
    )
    fetcher = SubprocessInvoiceFetcher(settings.NFE_LOOKUP_EXECUTABLE, settings.DIR_NFES)
    return NfeSyncService(store, fetcher)


def main():
    settings.setup_logging()

    try:
        service = build_service()
    except CredentialsError as e:
        logger.critical(f"Falha na inicialização do serviço Sheets: {e}")
        sys.exit(1)
    except OSError as e:
        logger.critical(f"Falha ao criar o diretório de saída ({settings.DIR_NFES}): {e}")
        sys.exit(1)

    logger.info(f"Caminho das Credenciais (Local): {settings.CREDENTIALS_FILE}")
    logger.info(f"Caminho do Executável (Local): {settings.NFE_LOOKUP_EXECUTABLE}")
    logger.info(f"Diretório de Saída XML (Local): {settings.DIR_NFES}")

    app = create_app(service)

    logger.info(
        f"Servidor rodando na porta :{settings.PORT}. "
        f"Frontend URL permitido: {settings.FRONTEND_URL}"
    )
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
