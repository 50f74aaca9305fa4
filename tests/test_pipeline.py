import tempfile
import unittest
from datetime import date
from pathlib import Path

from spendsheet.classifier import ClassificationRule
from spendsheet.pipeline import process_batch, process_file, process_workbook_bytes
from spendsheet.records import PaymentChannel
from spendsheet.settings import PipelineConfig

from statement_factory import citi_account_html, kb_card_rows, payroll_rows, write_xlsx


class ProcessFileTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_card_statement_end_to_end(self):
        path = write_xlsx(self.tmp / "kb.xlsx", {"Sheet1": kb_card_rows()})
        result = process_file(path)

        self.assertTrue(result.identified)
        self.assertFalse(result.failed)
        self.assertEqual(result.source_key, "kb_card")
        self.assertEqual(result.header_index, 1)
        self.assertEqual(len(result.records), 1)

        record = result.records[0]
        self.assertEqual(record.date, "2025-01-10")
        self.assertEqual(record.raw_description, "스타벅스")
        self.assertEqual(record.amount, 4500)
        self.assertEqual(record.item, "음료")
        self.assertIs(record.channel, PaymentChannel.CARD)
        self.assertEqual(record.col_card, 4500)
        self.assertEqual(record.col_card_detail, "KB국민카드")
        self.assertEqual(record.col_cash, "")
        self.assertEqual(record.col_transfer, "")
        self.assertEqual(record.raw_filename, "kb.xlsx")

    def test_payroll_end_to_end(self):
        path = write_xlsx(self.tmp / "payroll.xlsx", {"1월": payroll_rows()})
        result = process_file(path, today=date(2025, 2, 1))

        self.assertEqual(result.source_key, "payroll_summary")
        self.assertEqual([r.item for r in result.records], ["급여", "원천세", "퇴직연금"])
        self.assertTrue(all(r.channel is PaymentChannel.CASH for r in result.records))
        self.assertEqual(result.records[0].col_cash, 3_000_000)

    def test_rules_do_not_touch_payroll_entries(self):
        path = write_xlsx(self.tmp / "payroll.xlsx", {"Sheet1": payroll_rows()})
        rules = [ClassificationRule(("공제", "급여"), {"category_main": "복리후생비"})]
        result = process_file(path, rules=rules, today=date(2025, 2, 1))

        self.assertEqual([r.category_main for r in result.records], ["인건비", "세금과공과", "퇴직급여"])
        self.assertTrue(all(r.channel is PaymentChannel.CASH for r in result.records))

    def test_html_account_statement_routes_to_transfer(self):
        html = citi_account_html([["2025.01.15 13:20", "예금이자", "", "1,200", "10,000"]])
        result = process_workbook_bytes("citi.xls", html.encode("cp949"))

        self.assertEqual(result.source_key, "citi_account")
        record = result.records[0]
        self.assertEqual(record.amount, 1200)
        self.assertEqual(record.item, "이자")
        self.assertEqual(record.col_transfer, 1200)
        self.assertEqual(record.col_account, "씨티계좌")

    def test_unidentified_file_reports_probe(self):
        path = write_xlsx(self.tmp / "memo.xlsx", {"Sheet1": [["메모", "내용"], ["a", "b"]]})
        with self.assertLogs("spendsheet.router", level="WARNING"):
            result = process_file(path)

        self.assertFalse(result.identified)
        self.assertTrue(result.failed)
        self.assertEqual(result.records, [])
        self.assertEqual(result.debug_header, "메모,내용")
        self.assertEqual(result.failure_message, "식별 실패. 헤더: [메모,내용]")

    def test_search_limit_comes_from_config(self):
        rows = [["머리말"]] * 3 + kb_card_rows()
        data_path = write_xlsx(self.tmp / "deep.xlsx", {"Sheet1": rows})
        with self.assertLogs("spendsheet.router", level="WARNING"):
            shallow = process_file(data_path, config=PipelineConfig(max_search_rows=2))
        self.assertFalse(shallow.identified)
        self.assertTrue(process_file(data_path).identified)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            process_file(self.tmp / "absent.xlsx")


class ProcessBatchTests(unittest.TestCase):
    def test_errors_are_isolated_and_order_preserved(self):
        with tempfile.TemporaryDirectory() as tmp:
            kb = write_xlsx(Path(tmp) / "kb.xlsx", {"Sheet1": kb_card_rows()})
            payroll = write_xlsx(Path(tmp) / "payroll.xlsx", {"Sheet1": payroll_rows()})
            inputs = [
                ("broken.xlsx", b"PK\x03\x04 not really a zip"),
                kb,
                ("memo.csv", "메모,내용\n".encode("utf-8")),
                payroll,
            ]
            with self.assertLogs("spendsheet", level="WARNING"):
                batch = process_batch(inputs, config=PipelineConfig(concurrency=3), today=date(2025, 2, 1))

        self.assertEqual([f.filename for f in batch.files], ["broken.xlsx", "kb.xlsx", "memo.csv", "payroll.xlsx"])
        broken, card, memo, salary = batch.files
        self.assertIsNotNone(broken.error)
        self.assertTrue(broken.failure_message.startswith("읽기 실패: "))
        self.assertEqual(len(card.records), 1)
        self.assertFalse(memo.identified)
        self.assertEqual(len(salary.records), 3)

        self.assertEqual(len(batch.records), 4)
        self.assertEqual([name for name, _ in batch.failure_rows()], ["broken.xlsx", "memo.csv"])

    def test_empty_batch(self):
        batch = process_batch([])
        self.assertEqual(batch.files, [])
        self.assertEqual(batch.records, [])

    def test_file_result_serialises(self):
        batch = process_batch([("kb.csv", "이용일,이용시간,이용하신곳,이용금액(원)\n2025-01-10,13:00,택시,8000\n".encode("utf-8"))])
        payload = batch.files[0].to_dict()
        self.assertEqual(payload["source_key"], "kb_card")
        self.assertEqual(payload["record_count"], 1)
        self.assertEqual(batch.records[0].to_dict()["item"], "교통비")


if __name__ == "__main__":
    unittest.main()
