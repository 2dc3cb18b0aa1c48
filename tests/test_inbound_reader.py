"""Unit tests for InboundReader and CommandDispatcher."""

import threading
import unittest
from unittest.mock import MagicMock, Mock

from hclink.eventlog import EventLog
from hclink.link.dispatcher import CommandDispatcher
from hclink.link.reader import LINK_CLOSED_MESSAGE, InboundReader
from hclink.models import LinkResult, LogCategory, ReaderState

from fakes import HC05, FakeTransport, FakeWriter, StuckReader, wait_for


class TestInboundReader(unittest.TestCase):

    def setUp(self):
        self.transport = FakeTransport()
        self.log = EventLog()
        self.on_exit = Mock()
        self.reader = InboundReader(
            stream=self.transport.reader,
            transport=self.transport,
            event_log=self.log,
            on_exit=self.on_exit,
            name="TestReader",
        )

    def tearDown(self):
        self.reader.stop(timeout=1.0)

    def received(self):
        return [e.message for e in self.log.snapshot() if e.category is LogCategory.RECEIVED]

    def test_initial_state(self):
        self.assertEqual(self.reader.state, ReaderState.STOPPED)
        self.assertFalse(self.reader.is_running)

    def test_emits_received_lines(self):
        self.reader.start()
        self.assertTrue(self.reader.is_running)

        self.transport.feed(b"ACK\nDO")
        self.transport.feed(b"NE\n")

        self.assertTrue(wait_for(lambda: len(self.received()) == 2))
        self.assertEqual(self.received(), ["ACK", "DONE"])

    def test_start_twice(self):
        self.reader.start()
        with self.assertRaises(RuntimeError):
            self.reader.start()

    def test_stream_closed(self):
        self.reader.start()
        self.transport.feed(b"BYE\n")
        self.transport.drop()

        self.assertTrue(self.reader.join(timeout=1.0))
        self.assertEqual(self.reader.state, ReaderState.STOPPED)
        self.assertEqual([e.message for e in self.log.snapshot()], ["BYE", LINK_CLOSED_MESSAGE])
        self.on_exit.assert_called_once_with(self.reader)
        self.assertFalse(self.reader.stop_requested)
        # A clean close leaves closing to the owner
        self.assertEqual(self.transport.close_calls, 0)

    def test_read_error_closes_transport(self):
        self.reader.start()
        self.transport.fail_read(OSError("Connection reset by peer"))

        self.assertTrue(self.reader.join(timeout=1.0))
        self.assertEqual(self.transport.close_calls, 1)
        self.assertEqual(self.log.snapshot()[-1].message, LINK_CLOSED_MESSAGE)
        self.on_exit.assert_called_once_with(self.reader)

    def test_unterminated_tail_is_discarded(self):
        self.reader.start()
        self.transport.feed(b"PARTIAL")
        self.transport.drop()

        self.assertTrue(self.reader.join(timeout=1.0))
        self.assertEqual(self.received(), [])

    def test_stop(self):
        self.reader.start()

        self.assertTrue(self.reader.stop(timeout=1.0))

        self.assertTrue(self.reader.stop_requested)
        self.assertEqual(self.reader.state, ReaderState.STOPPED)
        self.assertGreaterEqual(self.transport.close_calls, 1)
        self.assertEqual(self.log.snapshot()[-1].message, LINK_CLOSED_MESSAGE)

    def test_request_stop_marks_stopping(self):
        stuck = StuckReader()
        reader = InboundReader(stream=stuck, transport=MagicMock(), event_log=self.log)
        reader.start()

        reader.request_stop()
        self.assertEqual(reader.state, ReaderState.STOPPING)
        self.assertFalse(reader.join(timeout=0.1))

        stuck.release.set()
        self.assertTrue(reader.join(timeout=1.0))
        self.assertEqual(reader.state, ReaderState.STOPPED)

    def test_exit_hook_error_is_contained(self):
        self.on_exit.side_effect = ValueError("boom")
        self.reader.start()
        self.transport.drop()
        self.assertTrue(self.reader.join(timeout=1.0))
        self.assertEqual(self.reader.state, ReaderState.STOPPED)

    def test_join_before_start(self):
        self.assertTrue(self.reader.join(timeout=0.1))


class TestCommandDispatcher(unittest.TestCase):

    def setUp(self):
        self.log = EventLog()
        self.dispatcher = CommandDispatcher(self.log)
        self.link = MagicMock()
        self.link.peer = HC05
        self.link.writer = FakeWriter()
        self.link.reader.exit_lock = threading.Lock()
        self.link.reader.is_running = True

    def test_dispatch(self):
        result = self.dispatcher.dispatch(self.link, "Box3_OPEN")

        self.assertEqual(result, LinkResult.OK)
        self.assertEqual(self.link.writer.written, [b"Box3_OPEN\n"])
        self.assertEqual(self.link.writer.flushes, 1)
        entry = self.log.snapshot()[-1]
        self.assertEqual((entry.category, entry.message), (LogCategory.SENT, "Box3_OPEN"))

    def test_dispatch_holds_reader_exit_lock(self):
        self.link.reader.exit_lock = MagicMock()
        self.link.reader.exit_lock.__exit__.return_value = False
        self.dispatcher.dispatch(self.link, "Box3_OPEN")
        self.link.reader.exit_lock.__enter__.assert_called_once()
        self.link.reader.exit_lock.__exit__.assert_called_once()

    def test_dispatch_after_reader_exit(self):
        self.link.reader.is_running = False

        result = self.dispatcher.dispatch(self.link, "Box3_OPEN")

        self.assertEqual(result, LinkResult.NOT_CONNECTED)
        self.assertEqual(self.link.writer.written, [])
        self.assertEqual([e.message for e in self.log.snapshot()], ["Connect to HC-05 first"])

    def test_write_failure(self):
        self.link.writer.error = OSError("Broken pipe")

        result = self.dispatcher.dispatch(self.link, "Box3_OPEN")

        self.assertEqual(result, LinkResult.TRANSPORT_WRITE_FAILED)
        entry = self.log.snapshot()[-1]
        self.assertEqual(entry.category, LogCategory.ERROR)
        self.assertEqual(entry.message, "Failed to send 'Box3_OPEN': Broken pipe")

    def test_custom_encoding(self):
        dispatcher = CommandDispatcher(self.log, encoding="latin-1")
        dispatcher.dispatch(self.link, "Tür_AUF")
        self.assertEqual(self.link.writer.written, ["Tür_AUF\n".encode("latin-1")])


if __name__ == '__main__':
    unittest.main()
