import contextvars
import json
import logging
import unittest

from identity_oracle.logging_config import AuditLogger, StructuredFormatter, run_id_var, set_run_id


class ListHandler(logging.Handler):

    def __init__(self):
        super().__init__()
        self.setFormatter(StructuredFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(json.loads(self.format(record)))


class TestStructuredLogging(unittest.TestCase):

    def setUp(self):
        self.handler = ListHandler()
        self.logger = logging.getLogger("identity_oracle.test_audit")
        self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self.handler)
        self.addCleanup(self.logger.removeHandler, self.handler)

    def test_set_run_id(self):
        ctx = contextvars.copy_context()
        run_id = ctx.run(set_run_id)
        self.assertEqual(len(run_id), 36)
        self.assertEqual(ctx[run_id_var], run_id)
        self.assertEqual(ctx.run(set_run_id, "fixed"), "fixed")

    def test_plain_record(self):
        ctx = contextvars.copy_context()
        ctx.run(set_run_id, "run-1")
        ctx.run(self.logger.warning, "fetch %s failed", "g1")

        line = self.handler.lines[0]
        self.assertEqual(line["message"], "fetch g1 failed")
        self.assertEqual(line["level"], "WARNING")
        self.assertEqual(line["run_id"], "run-1")
        self.assertIn("thread", line)

    def test_audit_event_fields(self):
        audit = AuditLogger("identity_oracle.test_audit")
        audit.settlement_failed(["0xaa"], approve=False, nonce=7, error="rejected", ambiguous=True)

        line = self.handler.lines[0]
        self.assertEqual(line["event_type"], "SETTLEMENT_FAILED")
        self.assertEqual(line["level"], "ERROR")
        self.assertEqual(line["hashes"], ["0xaa"])
        self.assertEqual(line["nonce"], 7)
        self.assertFalse(line["approve"])
        self.assertTrue(line["ambiguous"])


if __name__ == "__main__":
    unittest.main()
