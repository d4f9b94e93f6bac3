"""
Camada de Serviços.

Este módulo agrupa serviços de alto nível que orquestram
funcionalidades do sistema.

Serviços disponíveis:
- NfeSyncService: Importação de NF-e e manutenção da planilha
- GoogleSheetsStore: Cliente da planilha remota (Sheets API v4)
"""

from services.sheets_client import GoogleSheetsStore
from services.sync_service import NfeSyncService, SyncResult

__all__ = ['GoogleSheetsStore', 'NfeSyncService', 'SyncResult']
