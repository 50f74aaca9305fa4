import unittest
from datetime import date

from spendsheet.loader import Workbook
from spendsheet.normalizer import find_totals_row, normalize
from spendsheet.router import identify_source

from statement_factory import CITI_ACCOUNT_HEADER, KB_HEADER, PAYROLL_HEADER, payroll_rows


def identified(rows, filename="statement.xlsx"):
    workbook = Workbook(detected_format="xlsx")
    workbook.add_sheet("Sheet1", rows)
    result = identify_source(filename, workbook)
    assert result.identified, result.debug_header
    return result


class RowNormalizationTests(unittest.TestCase):
    def test_card_row_becomes_unclassified_record(self):
        source = identified([KB_HEADER, ["2025-01-10", "13:00", " 스타벅스 ", 4500]], "kb.xlsx")
        records, warnings = normalize("kb.xlsx", source)

        self.assertEqual(warnings, [])
        self.assertEqual(len(records), 1)
        record = records[0]
        self.assertEqual(record.date, "2025-01-10")
        self.assertEqual(record.time, "13:00")
        self.assertEqual(record.raw_description, "스타벅스")
        self.assertEqual(record.amount, 4500)
        self.assertEqual(record.raw_source, "KB국민카드")
        self.assertEqual(record.raw_filename, "kb.xlsx")
        self.assertEqual((record.item, record.category_main, record.category_mso), ("", "", ""))
        self.assertIsNone(record.channel)

    def test_rows_without_date_are_skipped(self):
        source = identified([
            KB_HEADER,
            ["2025-01-10", "13:00", "스타벅스", 4500],
            [],
            [None, None, "소계", 4500],
            ["20250111", "09:00", "주차장", "3,000"],
        ])
        records, _ = normalize("kb.xlsx", source)
        self.assertEqual([r.date for r in records], ["2025-01-10", "2025-01-11"])
        self.assertEqual(records[1].amount, 3000)

    def test_alternate_amount_used_only_when_primary_is_empty(self):
        source = identified([
            CITI_ACCOUNT_HEADER,
            ["2025.01.15 13:20", "이자", "", "1,200", "10,000"],
            ["2025.01.16 10:00", "관리비", "50,000", "99", "9,000"],
            ["2025.01.17 10:00", "수수료", 0, 500, "8,500"],
        ], "citi.xls")
        records, _ = normalize("citi.xls", source)
        self.assertEqual([r.amount for r in records], [1200, 50000, 500])
        self.assertEqual(records[0].date, "2025-01-15")
        self.assertEqual(records[0].time, "")

    def test_missing_column_degrades_to_blank(self):
        source = identified([["이용일", "이용하신곳", "이용금액"], ["2025-01-10", "편의점", 1200]])
        with self.assertLogs("spendsheet.field_mapper", level="WARNING"):
            records, warnings = normalize("kb.xlsx", source)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].time, "")
        self.assertEqual(records[0].amount, 1200)
        self.assertTrue(any("'time'" in w for w in warnings))

    def test_each_record_gets_a_fresh_id(self):
        row = ["2025-01-10", "13:00", "스타벅스", 4500]
        source = identified([KB_HEADER, row, list(row)])
        records, _ = normalize("kb.xlsx", source)
        self.assertEqual(len({r.id for r in records}), 2)

    def test_data_row_cap(self):
        rows = [KB_HEADER] + [["2025-01-10", "13:00", f"가게{i}", 1000] for i in range(5)]
        records, warnings = normalize("kb.xlsx", identified(rows), max_rows=3)
        self.assertEqual(len(records), 3)
        self.assertTrue(any("first 3" in w for w in warnings))


class PayrollSummaryTests(unittest.TestCase):
    def test_totals_row_yields_three_entries(self):
        source = identified(payroll_rows(), "payroll.xlsx")
        records, warnings = normalize("payroll.xlsx", source, today=date(2025, 2, 1))

        self.assertEqual(warnings, [])
        self.assertEqual(len(records), 3)
        self.assertEqual([r.amount for r in records[:2]], [3_000_000, 400_000])
        self.assertAlmostEqual(records[2].amount, 3_400_000 / 12)
        self.assertAlmostEqual(sum(r.amount for r in records), 3_000_000 + 400_000 + 3_400_000 / 12)
        self.assertEqual({r.date for r in records}, {"2025-02-01"})
        self.assertEqual([r.category_main for r in records], ["인건비", "세금과공과", "퇴직급여"])
        self.assertEqual([r.item for r in records], ["급여", "원천세", "퇴직연금"])
        self.assertEqual({r.raw_source for r in records}, {"급여대장"})

    def test_alternate_payroll_column_names(self):
        rows = [
            ["성명", "공제합계", "차인지급액"],
            ["홍길동", 100_000, 900_000],
            ["합계", 100_000, 900_000],
        ]
        source = identified(rows, "payroll.xlsx")
        self.assertEqual(source.definition.key, "payroll_summary")

        records, warnings = normalize("payroll.xlsx", source, today=date(2025, 2, 1))
        self.assertEqual(warnings, [])
        self.assertEqual([r.amount for r in records[:2]], [900_000, 100_000])
        self.assertAlmostEqual(records[2].amount, 1_000_000 / 12)

    def test_defaults_to_today(self):
        records, _ = normalize("payroll.xlsx", identified(payroll_rows()))
        self.assertEqual(records[0].date, date.today().isoformat())

    def test_totals_marker_is_found_in_any_cell(self):
        rows = [PAYROLL_HEADER, ["김민수", 1, 2, 3], ["", "총 합 계", 400_000, 3_000_000]]
        records, _ = normalize("payroll.xlsx", identified(rows), today=date(2025, 2, 1))
        self.assertEqual(records[0].amount, 3_000_000)

    def test_missing_totals_row_yields_no_records(self):
        rows = [PAYROLL_HEADER, ["김민수", 2_000_000, 250_000, 1_750_000]]
        with self.assertLogs("spendsheet.normalizer", level="WARNING"):
            records, warnings = normalize("payroll.xlsx", identified(rows))
        self.assertEqual(records, [])
        self.assertEqual(len(warnings), 1)
        self.assertIn("합계", warnings[0])

    def test_find_totals_row_ignores_case_and_whitespace(self):
        rows = [["a", "b"], ["Grand", "TO TAL"]]
        self.assertEqual(find_totals_row(rows, "total"), ["Grand", "TO TAL"])
        self.assertIsNone(find_totals_row(rows, "sum"))


if __name__ == "__main__":
    unittest.main()
