import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

from core.exceptions import (
    LookupProcessError,
    MissingKeyError,
    OperationCancelledError,
    OperationTimeoutError,
    ResultNotFoundError,
)
from core.interfaces import InvoiceFetcher

logger = logging.getLogger(__name__)


class SubprocessInvoiceFetcher(InvoiceFetcher):
    """
    Obtém o XML de uma NF-e executando o programa externo de consulta.

    O programa recebe a chave de acesso como único argumento e, em caso de
    sucesso, grava NFe_<chave>.xml no diretório de saída. Código de saída e
    saída capturada (stdout + stderr) são os únicos sinais de sucesso/falha.
    Uma única execução e uma única leitura por chamada, sem retry.

    Attributes:
        command (List[str]): Executável (ou prefixo de comando) da consulta.
        output_dir (Path): Diretório onde o programa grava os XMLs.
        poll_interval (float): Intervalo de verificação de timeout/cancelamento.

    Usage:
        fetcher = SubprocessInvoiceFetcher(settings.NFE_LOOKUP_EXECUTABLE, settings.DIR_NFES)
        xml_bytes = fetcher.fetch_by_key("3525...")
    """

    def __init__(
        self,
        command: Union[str, Path, Sequence[str]],
        output_dir: Union[str, Path],
        poll_interval: float = 0.2,
    ):
        if isinstance(command, (str, Path)):
            self.command = [str(command)]
        else:
            self.command = [str(part) for part in command]
        self.output_dir = Path(output_dir)
        self.poll_interval = poll_interval

    def xml_path_for(self, chave_acesso: str) -> Path:
        """Caminho do XML gerado para a chave (NFe_<chave>.xml)."""
        return self.output_dir / f"NFe_{chave_acesso}.xml"

    def fetch_by_key(
        self,
        chave_acesso: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> bytes:
        chave_acesso = (chave_acesso or "").strip()
        if not chave_acesso:
            raise MissingKeyError("chave de acesso não informada")

        args = self.command + [chave_acesso]
        logger.info(f"Iniciando execução externa: {' '.join(args)}")

        output = self._run(args, timeout, cancel_event)

        logger.debug(f"Execução externa concluída. Saída (DEBUG):\n{output}")

        xml_path = self.xml_path_for(chave_acesso)
        try:
            return xml_path.read_bytes()
        except FileNotFoundError:
            logger.error(f"Arquivo XML não encontrado em {xml_path}")
            raise ResultNotFoundError(
                "o programa de consulta não gerou o arquivo XML. "
                "Possível motivo: NFe não autorizada ou inexistente."
            )
        except OSError as e:
            logger.error(f"Erro ao ler o arquivo XML em {xml_path}: {e}")
            raise LookupProcessError(f"falha ao ler o XML gerado: {e}") from e

    def _run(
        self,
        args: List[str],
        timeout: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> str:
        """
        Executa o programa e devolve a saída combinada.

        O processo é encerrado se o tempo limite expirar ou se o
        cancel_event for sinalizado.

        Raises:
            LookupProcessError: Se o programa não puder ser iniciado ou sair com código != 0
            OperationTimeoutError: Se o tempo limite expirar
            OperationCancelledError: Se o solicitante desistir
        """
        try:
            proc = subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            logger.error(f"Erro ao iniciar o programa de consulta {args[0]}: {e}")
            raise LookupProcessError(
                f"falha ao executar o programa de consulta: {e}"
            ) from e

        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            try:
                raw_output, _ = proc.communicate(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                pass

            if cancel_event is not None and cancel_event.is_set():
                self._kill(proc)
                logger.warning(f"Consulta cancelada: {' '.join(args)}")
                raise OperationCancelledError("consulta da NF-e cancelada pelo solicitante")

            if deadline is not None and time.monotonic() >= deadline:
                self._kill(proc)
                logger.error(f"⏱️ TIMEOUT: consulta excedeu {timeout}s")
                raise OperationTimeoutError(
                    f"a consulta da NF-e excedeu o tempo limite de {timeout:g}s"
                )

        output = (raw_output or b"").decode("utf-8", errors="replace")

        if proc.returncode != 0:
            logger.error(
                f"Erro na execução do programa de consulta: código {proc.returncode}. "
                f"Saída: {output}"
            )
            raise LookupProcessError(
                f"falha ao executar o programa de consulta: exit status {proc.returncode}. "
                f"Saída: {output}",
                output=output,
            )

        return output

    def _kill(self, proc: subprocess.Popen) -> None:
        proc.kill()
        # Coleta o processo e descarta a saída pendente
        proc.communicate()
