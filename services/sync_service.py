"""
Serviço de sincronização de NF-e com o Google Sheets.

Orquestra os fluxos expostos pela API:

Importação:
1. import_xml_content: XML recebido -> linhas -> append na aba principal -> registra a chave
2. import_by_key: programa de consulta -> XML -> mesmo fluxo do item 1

Manutenção da planilha:
3. read_sheet: lê a aba inteira (A:Z)
4. update_cell: grava um valor numa célula
5. clear_sheet: limpa uma faixa; se for a aba principal, zera o controle de duplicidade

Cada fluxo roda numa thread própria com tempo limite (30s importação,
15s manutenção). Ao expirar, o fluxo é sinalizado para parar e o chamador
recebe OperationTimeoutError.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar, Union

from config import settings
from core.duplicate_tracker import DuplicateTracker
from core.exceptions import (
    DuplicateInvoiceError,
    LookupProcessError,
    NfeSheetsError,
    OperationCancelledError,
    OperationTimeoutError,
)
from core.interfaces import InvoiceFetcher, TabularStore
from core.models import Grid
from extractors.xml_extractor import NfeRowExtractor

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SyncResult:
    """Resultado de um fluxo bem-sucedido."""

    message: str = ""
    chave: Optional[str] = None
    data: Optional[Grid] = None


class FlowContext:
    """Prazo e sinal de parada compartilhados com a thread do fluxo."""

    def __init__(self, timeout: Optional[float]):
        self.cancel_event = threading.Event()
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Interrompe o fluxo se ele já foi abandonado pelo chamador."""
        if self.cancel_event.is_set():
            raise OperationCancelledError("operação interrompida")


class NfeSyncService:
    """
    Orquestrador dos fluxos de importação e manutenção da planilha.

    O controle de duplicidade pertence a este serviço e é compartilhado
    entre todas as requisições.

    Args:
        store: Planilha de destino (TabularStore).
        fetcher: Consulta de XML por chave. Obrigatório apenas para import_by_key.
        tracker: Controle de duplicidade. Se None, cria um vazio.
        primary_sheet: Aba que recebe as notas e cuja limpeza zera a duplicidade.
        ingest_timeout: Tempo limite dos fluxos de importação (segundos).
        maintenance_timeout: Tempo limite dos fluxos de manutenção (segundos).

    Usage:
        service = NfeSyncService(store, fetcher)
        result = service.import_xml_content(xml, user_id="u1")
        print(result.message)
    """

    def __init__(
        self,
        store: TabularStore,
        fetcher: Optional[InvoiceFetcher] = None,
        tracker: Optional[DuplicateTracker] = None,
        primary_sheet: str = settings.NOTA_FISCAL_SHEET,
        ingest_timeout: Optional[float] = settings.INGEST_TIMEOUT_SECONDS,
        maintenance_timeout: Optional[float] = settings.MAINTENANCE_TIMEOUT_SECONDS,
        poll_interval: float = 0.1,
    ):
        self.store = store
        self.fetcher = fetcher
        self.tracker = tracker if tracker is not None else DuplicateTracker()
        self.extractor = NfeRowExtractor(self.tracker)
        self.primary_sheet = primary_sheet
        self.ingest_timeout = ingest_timeout
        self.maintenance_timeout = maintenance_timeout
        self.poll_interval = poll_interval

    # ==================== Importação ====================

    def import_xml_content(
        self,
        xml_content: Union[str, bytes],
        user_id: str = "",
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncResult:
        """
        Importa um XML de NF-e recebido diretamente.

        Raises:
            MalformedDocumentError, MissingKeyError, DuplicateInvoiceError:
                XML inválido ou nota já importada
            StoreUnavailableError: Falha no Google Sheets
            OperationTimeoutError: Tempo limite excedido
        """
        def flow(ctx: FlowContext) -> SyncResult:
            chave = self._import_content(xml_content, ctx)
            logger.info(f"Sucesso na importação da NF: {chave} para o usuário: {user_id}")
            return SyncResult(
                message=f"Nota Fiscal (Chave: {chave}) importada com sucesso!",
                chave=chave,
            )

        return self._run("importação de XML", flow, self.ingest_timeout, cancel_event)

    def import_by_key(
        self,
        chave_acesso: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncResult:
        """
        Busca o XML pela chave de acesso e importa.

        Qualquer falha da consulta interrompe o fluxo antes da extração.

        Raises:
            LookupProcessError, ResultNotFoundError: Falha na consulta
            (demais exceções como em import_xml_content)
        """
        if self.fetcher is None:
            raise LookupProcessError("consulta de NF-e por chave não configurada")

        def flow(ctx: FlowContext) -> SyncResult:
            try:
                xml_data = self.fetcher.fetch_by_key(
                    chave_acesso,
                    timeout=ctx.remaining(),
                    cancel_event=ctx.cancel_event,
                )
            except NfeSheetsError as e:
                e.etapa = "busca"
                raise

            chave = self._import_content(xml_data, ctx)
            logger.info(f"Sucesso na importação por chave: {chave}")
            return SyncResult(
                message=f"Nota Fiscal (Chave: {chave}) baixada e importada com sucesso!",
                chave=chave,
            )

        return self._run("importação por chave", flow, self.ingest_timeout, cancel_event)

    def _import_content(self, xml_content: Union[str, bytes], ctx: FlowContext) -> str:
        """Extrai, grava na aba principal e registra a chave. Retorna a chave."""
        try:
            rows, chave = self.extractor.extract(xml_content)
        except NfeSheetsError as e:
            e.etapa = "extracao"
            raise

        # Reserva atômica: entre duas importações simultâneas da mesma chave,
        # só uma chega ao append.
        reserva = self.tracker.reserve(chave)
        if reserva is None:
            e = DuplicateInvoiceError(chave)
            e.etapa = "extracao"
            raise e

        try:
            ctx.check()
            self.store.append(self.primary_sheet, rows)
        except NfeSheetsError as e:
            self.tracker.release(chave, reserva)
            e.etapa = e.etapa or "planilha"
            raise
        except BaseException:
            self.tracker.release(chave, reserva)
            raise

        self.tracker.commit(chave, reserva)
        return chave

    # ==================== Manutenção da planilha ====================

    def read_sheet(
        self, sheet_name: str, cancel_event: Optional[threading.Event] = None
    ) -> SyncResult:
        """Lê a aba e devolve o grid como veio da planilha."""
        def flow(ctx: FlowContext) -> SyncResult:
            return SyncResult(data=self.store.read(sheet_name))

        return self._run("leitura da planilha", flow, self.maintenance_timeout, cancel_event)

    def update_cell(
        self,
        sheet_name: str,
        cell_range: str,
        value: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncResult:
        """Grava um valor numa célula e confirma range e valor."""
        def flow(ctx: FlowContext) -> SyncResult:
            self.store.update(sheet_name, cell_range, value)
            logger.info(f"Célula {sheet_name}!{cell_range} atualizada para '{value}'")
            return SyncResult(
                message=f"Célula {cell_range} atualizada com sucesso para '{value}'."
            )

        return self._run("atualização de célula", flow, self.maintenance_timeout, cancel_event)

    def clear_sheet(
        self,
        sheet_name: str,
        cell_range: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncResult:
        """
        Limpa uma faixa da aba.

        Limpar a aba principal (e somente ela) também zera o controle de
        duplicidade; do contrário, notas removidas seriam recusadas como
        duplicadas numa nova importação.
        """
        def flow(ctx: FlowContext) -> SyncResult:
            self.store.clear(sheet_name, cell_range)

            # Limpar o controle de duplicidade apenas se for a aba principal
            if sheet_name == self.primary_sheet:
                self.tracker.reset()

            logger.info(f"Dados da aba '{sheet_name}' (Range: {cell_range}) limpos com sucesso.")
            return SyncResult(message=f"Dados da aba '{sheet_name}' limpos com sucesso.")

        return self._run("limpeza da planilha", flow, self.maintenance_timeout, cancel_event)

    # ==================== Execução com tempo limite ====================

    def _run(
        self,
        descricao: str,
        flow: Callable[[FlowContext], T],
        timeout: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> T:
        """
        Executa o fluxo numa thread com tempo limite e cancelamento.

        Raises:
            OperationTimeoutError: Se o fluxo não terminar a tempo
            OperationCancelledError: Se o cancel_event do chamador for sinalizado
        """
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(f"{descricao} cancelada pelo solicitante")

        ctx = FlowContext(timeout)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="nfe-sync")
        try:
            future = executor.submit(flow, ctx)
            while True:
                remaining = ctx.remaining()
                step = self.poll_interval if remaining is None else min(remaining, self.poll_interval)
                done, _ = wait([future], timeout=step)
                if done:
                    return future.result()

                if cancel_event is not None and cancel_event.is_set():
                    ctx.cancel_event.set()
                    logger.warning(f"🚫 {descricao} cancelada: solicitante desconectou")
                    raise OperationCancelledError(f"{descricao} cancelada pelo solicitante")

                if ctx.remaining() == 0.0:
                    ctx.cancel_event.set()
                    logger.error(f"⏱️ TIMEOUT: {descricao} excedeu {timeout:g}s")
                    raise OperationTimeoutError(
                        f"{descricao} excedeu o tempo limite de {timeout:g}s"
                    )
        finally:
            # A thread de um fluxo abandonado termina em segundo plano
            executor.shutdown(wait=False)
