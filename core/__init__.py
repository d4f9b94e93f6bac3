"""
Core module for NF-e ingestion and spreadsheet synchronization.

This module provides the main classes and interfaces for:
- Invoice models (NfeDocument, NfeItem) and sheet row types
- Contracts for the remote spreadsheet and the invoice lookup
- Duplicate-invoice tracking
- Project exceptions
"""

from .duplicate_tracker import DuplicateTracker
from .exceptions import (
    CredentialsError,
    DuplicateInvoiceError,
    LookupProcessError,
    MalformedDocumentError,
    MissingKeyError,
    NfeSheetsError,
    OperationCancelledError,
    OperationTimeoutError,
    ResultNotFoundError,
    StoreUnavailableError,
)
from .interfaces import InvoiceFetcher, TabularStore
from .models import CellValue, Grid, NfeDocument, NfeItem, Row

__all__ = [
    # Models
    "NfeDocument",
    "NfeItem",
    "CellValue",
    "Row",
    "Grid",
    # Interfaces
    "TabularStore",
    "InvoiceFetcher",
    # State
    "DuplicateTracker",
    # Exceptions
    "NfeSheetsError",
    "MalformedDocumentError",
    "MissingKeyError",
    "DuplicateInvoiceError",
    "LookupProcessError",
    "ResultNotFoundError",
    "StoreUnavailableError",
    "OperationTimeoutError",
    "OperationCancelledError",
    "CredentialsError",
]
