"""
Carregamento das credenciais do Google Sheets.

Ordem de prioridade:
1. Arquivo local (credentials.json)
2. Variável de ambiente CREDENTIALS_BASE64 (JSON da service account em Base64 URL-safe)

Sem nenhuma das duas o servidor não sobe.
"""
import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from google.oauth2 import service_account
from googleapiclient.discovery import build

from config import settings
from core.exceptions import CredentialsError

logger = logging.getLogger(__name__)

SPREADSHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"


def load_credentials_info(
    credentials_file: Union[str, Path] = settings.CREDENTIALS_FILE,
    base64_creds: Optional[str] = settings.CREDENTIALS_BASE64,
) -> dict:
    """
    Lê o JSON da service account do arquivo ou da variável Base64.

    Args:
        credentials_file: Caminho do credentials.json
        base64_creds: Conteúdo Base64 (URL-safe, padding opcional)

    Returns:
        dict: JSON da service account

    Raises:
        CredentialsError: Se nenhuma fonte existir ou o conteúdo for inválido
    """
    credentials_file = Path(credentials_file)
    logger.info(f"Tentando ler credenciais do arquivo local: {credentials_file}")

    if credentials_file.exists():
        try:
            raw = credentials_file.read_bytes()
        except OSError as e:
            raise CredentialsError(f"erro ao ler credenciais do arquivo: {e}") from e
        logger.info("Credenciais encontradas via arquivo local (credentials.json).")
    elif base64_creds:
        logger.info("Credenciais encontradas via variável de ambiente (Base64).")
        raw = _decode_base64(base64_creds)
    else:
        raise CredentialsError(
            "credenciais de acesso ao Google Sheets não encontradas. "
            "Verifique credentials.json ou a variável CREDENTIALS_BASE64"
        )

    try:
        return json.loads(raw)
    except ValueError as e:
        raise CredentialsError(f"credenciais em formato JSON inválido: {e}") from e


def _decode_base64(value: str) -> bytes:
    """Decodifica Base64 URL-safe aceitando ausência de padding."""
    value = value.strip()
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise CredentialsError(f"erro ao decodificar Base64: {e}") from e


def build_credentials(info: dict) -> Any:
    """Cria as credenciais da service account com escopo de planilhas."""
    try:
        return service_account.Credentials.from_service_account_info(
            info, scopes=[SPREADSHEETS_SCOPE]
        )
    except (ValueError, KeyError) as e:
        raise CredentialsError(f"erro ao criar credenciais da service account: {e}") from e


def build_sheets_service(credentials: Any) -> Any:
    """Cria o recurso da Google Sheets API v4."""
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)
