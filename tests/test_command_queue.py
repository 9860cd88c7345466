import threading
import unittest
from glassdeck.command_queue import CommandQueue


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now
    def __call__(self):
        return self.now


class TestCommandQueue(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.queue = CommandQueue(ttl_seconds=5.0, clock=self.clock)

    def test_drain_returns_in_enqueue_order(self):
        self.queue.enqueue("s1", "pause")
        self.queue.enqueue("s1", "seek", 12.5)
        self.queue.enqueue("s1", "speed", 1.5)

        commands = self.queue.drain("s1")
        self.assertEqual([(c.kind, c.value) for c in commands], [("pause", None), ("seek", 12.5), ("speed", 1.5)])
        self.assertEqual(self.queue.drain("s1"), [])

    def test_stale_commands_are_dropped_and_queue_reset(self):
        self.queue.enqueue("s1", "seek", 40.0)
        self.clock.now += 5.5

        self.assertEqual(self.queue.drain("s1"), [])
        self.assertEqual(self.queue.drain("s1"), [])
        self.assertEqual(self.queue.pending("s1"), [])

    def test_only_fresh_commands_survive(self):
        self.queue.enqueue("s1", "seek", 1.0)
        self.clock.now += 4.0
        self.queue.enqueue("s1", "play")
        self.clock.now += 2.0

        commands = self.queue.drain("s1")
        self.assertEqual([c.kind for c in commands], ["play"])

    def test_sessions_are_isolated(self):
        self.queue.enqueue("s1", "play")
        self.queue.enqueue("s2", "pause")
        self.assertEqual([c.kind for c in self.queue.drain("s2")], ["pause"])
        self.assertEqual([c.kind for c in self.queue.pending("s1")], ["play"])

    def test_discard(self):
        self.queue.enqueue("s1", "play")
        self.queue.discard("s1")
        self.queue.discard("unknown")
        self.assertEqual(self.queue.drain("s1"), [])

    def test_enqueued_at_uses_clock(self):
        command = self.queue.enqueue("s1", "next")
        self.assertEqual(command.enqueued_at, 1000.0)

    def test_concurrent_drain_loses_nothing(self):
        total = 50000
        delivered = []
        done = threading.Event()

        def produce():
            for i in range(total):
                self.queue.enqueue("s1", "seek", float(i))
            done.set()

        producer = threading.Thread(target=produce)
        producer.start()
        while not done.is_set():
            delivered.extend(self.queue.drain("s1"))
        producer.join()
        delivered.extend(self.queue.drain("s1"))

        self.assertEqual([c.value for c in delivered], [float(i) for i in range(total)])

if __name__ == '__main__':
    unittest.main()
