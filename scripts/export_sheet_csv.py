"""
Exporta uma aba da planilha para CSV.

Usa o mesmo fluxo de leitura da API (read_sheet) e grava o resultado com
separador ';' e BOM UTF-8, pronto para abrir no Excel.

Usage:
    python scripts/export_sheet_csv.py "NOTA FISCAL" --output data/nota_fiscal.csv
"""
from _init_env import setup_project_path

PROJECT_ROOT = setup_project_path()

import argparse
import logging
import sys
from pathlib import Path

from config import settings
from core.exceptions import NfeSheetsError
from core.exporters import CsvExporter
from services.credentials import build_credentials, build_sheets_service, load_credentials_info
from services.sheets_client import GoogleSheetsStore
from services.sync_service import NfeSyncService

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Exporta uma aba do Google Sheets para CSV")
    parser.add_argument("sheet_name", nargs="?", default=settings.NOTA_FISCAL_SHEET,
                        help="Nome da aba (padrão: aba principal)")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Arquivo CSV de saída (padrão: data/output/<aba>.csv)")
    args = parser.parse_args(argv)

    settings.setup_logging()

    output = args.output or PROJECT_ROOT / "data" / "output" / f"{args.sheet_name}.csv"
    output.parent.mkdir(parents=True, exist_ok=True)

    try:
        credentials = build_credentials(load_credentials_info())
        store = GoogleSheetsStore(
            build_sheets_service(credentials),
            spreadsheet_id=settings.SPREADSHEET_ID,
            credentials=credentials,
        )
        grid = NfeSyncService(store).read_sheet(args.sheet_name).data
        CsvExporter().export(grid, output)
    except NfeSheetsError as e:
        print(f"❌ Erro: {e}")
        return 1
    except ValueError as e:
        print(f"📭 {e}")
        return 1

    print(f"📊 {len(grid) - 1} linha(s) exportadas -> {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
