import queue
import threading
import unittest
from pathlib import Path

from bucket_sync.channel import DecisionChannel
from bucket_sync.models import ConflictDecision, ConflictRequest, ObjectEntry, RenameRequest

ENTRY = ObjectEntry(key="a.txt", display_name="a.txt", size=1)
CONFLICT = ConflictRequest(entry=ENTRY, target_path=Path("/sync/a.txt"))
RENAME = RenameRequest(entry=ENTRY, current_target_path=Path("/sync/a.txt"), suggested_name="a (1).txt")


class QueueDispatcher:
    """Collects dispatched callables so a test can play the presentation thread."""

    def __init__(self):
        self.calls = queue.Queue()

    def __call__(self, func):
        self.calls.put(func)

    def run_next(self, timeout=2):
        self.calls.get(timeout=timeout)()


class DecisionChannelTests(unittest.TestCase):
    def test_synchronous_reply(self):
        channel = DecisionChannel(
            on_conflict=lambda request, reply: reply(ConflictDecision.RENAME),
            on_rename=lambda request, reply: reply(request.suggested_name),
        )

        self.assertEqual(ConflictDecision.RENAME, channel.decide_conflict(CONFLICT))
        self.assertEqual("a (1).txt", channel.request_rename(RENAME))
        self.assertFalse(channel.has_pending)

    def test_worker_blocks_until_presentation_thread_replies(self):
        dispatcher = QueueDispatcher()
        prompts = []
        channel = DecisionChannel(
            on_conflict=lambda request, reply: prompts.append((request, reply)),
            on_rename=lambda request, reply: None,
            dispatch=dispatcher,
        )
        results = []
        worker = threading.Thread(target=lambda: results.append(channel.decide_conflict(CONFLICT)))
        worker.start()

        dispatcher.run_next()
        self.assertTrue(channel.has_pending)
        self.assertEqual([], results)
        request, reply = prompts[0]
        self.assertIs(CONFLICT, request)
        reply(ConflictDecision.OVERWRITE)
        reply(ConflictDecision.SKIP)
        worker.join(timeout=2)

        self.assertEqual([ConflictDecision.OVERWRITE], results)
        self.assertFalse(channel.has_pending)

    def test_second_request_while_pending_is_rejected(self):
        dispatcher = QueueDispatcher()
        replies = []
        channel = DecisionChannel(
            on_conflict=lambda request, reply: replies.append(reply),
            on_rename=lambda request, reply: replies.append(reply),
            dispatch=dispatcher,
        )
        worker = threading.Thread(target=channel.decide_conflict, args=(CONFLICT,))
        worker.start()
        dispatcher.run_next()

        with self.assertRaises(RuntimeError):
            channel.request_rename(RENAME)

        replies[0](ConflictDecision.SKIP)
        worker.join(timeout=2)
        self.assertFalse(worker.is_alive())

    def test_cancel_pending_counts_as_dismissal(self):
        dispatcher = QueueDispatcher()
        channel = DecisionChannel(
            on_conflict=lambda request, reply: None,
            on_rename=lambda request, reply: None,
            dispatch=dispatcher,
        )
        results = []
        worker = threading.Thread(target=lambda: results.append(channel.request_rename(RENAME)))
        worker.start()
        dispatcher.run_next()

        self.assertTrue(channel.cancel_pending())
        worker.join(timeout=2)

        self.assertEqual([None], results)
        self.assertFalse(channel.cancel_pending())


if __name__ == "__main__":
    unittest.main()
