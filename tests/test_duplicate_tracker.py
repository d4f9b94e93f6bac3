"""
Testes para o controle de duplicidade de notas importadas.
"""
import threading
import unittest

from core.duplicate_tracker import DuplicateTracker


class TestDuplicateTracker(unittest.TestCase):
    """Testa registro, consulta e limpeza das chaves."""

    def setUp(self):
        self.tracker = DuplicateTracker()

    def test_empty_tracker(self):
        self.assertFalse(self.tracker.contains("123"))
        self.assertEqual(len(self.tracker), 0)

    def test_record_and_contains(self):
        self.tracker.record("123")
        self.assertTrue(self.tracker.contains("123"))
        self.assertFalse(self.tracker.contains("456"))

    def test_record_is_idempotent(self):
        self.tracker.record("123")
        self.tracker.record("123")
        self.assertEqual(len(self.tracker), 1)

    def test_reset(self):
        self.tracker.record("123")
        self.tracker.record("456")

        with self.assertLogs("core.duplicate_tracker", level="INFO") as logs:
            self.tracker.reset()

        self.assertFalse(self.tracker.contains("123"))
        self.assertEqual(len(self.tracker), 0)
        self.assertIn("2 chave(s)", logs.output[0])

    def test_snapshot_is_a_copy(self):
        self.tracker.record("123")
        snapshot = self.tracker.snapshot()
        snapshot.add("999")
        self.assertEqual(self.tracker.snapshot(), {"123"})


class TestDuplicateTrackerReservation(unittest.TestCase):
    """Testa reserva, confirmação e liberação de chaves em andamento."""

    def setUp(self):
        self.tracker = DuplicateTracker()

    def test_reserve_blocks_second_reservation(self):
        self.assertIsNotNone(self.tracker.reserve("123"))
        self.assertIsNone(self.tracker.reserve("123"))
        self.assertTrue(self.tracker.contains("123"))

    def test_reserved_key_is_not_committed(self):
        self.tracker.reserve("123")
        self.assertEqual(len(self.tracker), 0)
        self.assertEqual(self.tracker.snapshot(), set())

    def test_commit(self):
        reserva = self.tracker.reserve("123")
        self.assertTrue(self.tracker.commit("123", reserva))
        self.assertEqual(self.tracker.snapshot(), {"123"})
        self.assertIsNone(self.tracker.reserve("123"))

    def test_release(self):
        reserva = self.tracker.reserve("123")
        self.tracker.release("123", reserva)
        self.assertFalse(self.tracker.contains("123"))
        self.assertIsNotNone(self.tracker.reserve("123"))

    def test_reserve_rejects_recorded_key(self):
        self.tracker.record("123")
        self.assertIsNone(self.tracker.reserve("123"))

    def test_reset_drops_reservations(self):
        self.tracker.record("111")
        self.tracker.reserve("222")

        self.tracker.reset()

        self.assertFalse(self.tracker.contains("111"))
        self.assertFalse(self.tracker.contains("222"))

    def test_commit_after_reset_is_discarded(self):
        """Reserva feita antes da limpeza não registra a chave depois dela."""
        reserva = self.tracker.reserve("222")
        self.tracker.reset()

        self.assertFalse(self.tracker.commit("222", reserva))
        self.assertFalse(self.tracker.contains("222"))

    def test_stale_reservation_does_not_touch_new_one(self):
        antiga = self.tracker.reserve("222")
        self.tracker.reset()
        nova = self.tracker.reserve("222")

        self.tracker.release("222", antiga)
        self.assertTrue(self.tracker.contains("222"))
        self.assertFalse(self.tracker.commit("222", antiga))

        self.assertTrue(self.tracker.commit("222", nova))
        self.assertEqual(self.tracker.snapshot(), {"222"})

    def test_concurrent_reserve_single_winner(self):
        """Entre várias threads reservando a mesma chave, só uma consegue."""
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            ok = self.tracker.reserve("35250112345678000195") is not None
            with lock:
                results.append(ok)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results.count(True), 1)
        self.assertEqual(results.count(False), 7)


if __name__ == '__main__':
    unittest.main()
