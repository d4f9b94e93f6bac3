"""
Controle de duplicidade de notas importadas.

Conjunto em memória das chaves já enviadas para a aba principal durante a
vida do processo. Não é persistido: um restart esquece o histórico.

Para que duas importações simultâneas da mesma chave não passem ambas pela
verificação, a importação reserva a chave antes de gravar na planilha
(reserve), confirma após o sucesso (commit) ou libera em caso de falha
(release). Uma chave reservada conta como presente em contains().

reset() esquece também as reservas em andamento: uma importação que
confirmar depois da limpeza não volta a marcar a chave.
"""
import logging
import threading
from typing import Dict, Optional, Set

logger = logging.getLogger(__name__)


class DuplicateTracker:
    """
    Conjunto de chaves importadas, protegido por lock.

    Usage:
        tracker = DuplicateTracker()
        reserva = tracker.reserve(chave)
        if reserva is not None:
            try:
                ...  # grava na planilha
            except Exception:
                tracker.release(chave, reserva)
                raise
            tracker.commit(chave, reserva)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._importadas: Set[str] = set()
        # chave -> número da reserva
        self._em_andamento: Dict[str, int] = {}
        self._ultima_reserva = 0

    def contains(self, chave: str) -> bool:
        with self._lock:
            return chave in self._importadas or chave in self._em_andamento

    def record(self, chave: str) -> None:
        with self._lock:
            self._em_andamento.pop(chave, None)
            self._importadas.add(chave)

    def reset(self) -> None:
        """Esquece as chaves importadas e as reservas em andamento."""
        with self._lock:
            total = len(self._importadas)
            pendentes = len(self._em_andamento)
            self._importadas.clear()
            self._em_andamento.clear()
        logger.info(
            f"🧹 Controle de duplicidade zerado ({total} chave(s) removida(s), "
            f"{pendentes} reserva(s) descartada(s))"
        )

    def reserve(self, chave: str) -> Optional[int]:
        """
        Reserva a chave de forma atômica.

        Returns:
            Optional[int]: Número da reserva (usado em commit/release), ou
            None se a chave já estiver importada ou reservada.
        """
        with self._lock:
            if chave in self._importadas or chave in self._em_andamento:
                return None
            self._ultima_reserva += 1
            self._em_andamento[chave] = self._ultima_reserva
            return self._ultima_reserva

    def commit(self, chave: str, reserva: Optional[int] = None) -> bool:
        """
        Confirma a reserva como chave importada.

        Se reserva for informada e não estiver mais ativa (descartada por
        reset), nada é registrado.

        Returns:
            bool: True se a chave foi registrada.
        """
        with self._lock:
            if reserva is not None and self._em_andamento.get(chave) != reserva:
                descartada = True
            else:
                descartada = False
                self._em_andamento.pop(chave, None)
                self._importadas.add(chave)
        if descartada:
            logger.info(f"Reserva da chave {chave} descartada: aba principal limpa durante a importação")
        return not descartada

    def release(self, chave: str, reserva: Optional[int] = None) -> None:
        with self._lock:
            if reserva is None or self._em_andamento.get(chave) == reserva:
                self._em_andamento.pop(chave, None)

    def snapshot(self) -> Set[str]:
        with self._lock:
            return set(self._importadas)

    def __len__(self) -> int:
        with self._lock:
            return len(self._importadas)
