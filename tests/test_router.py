import unittest

from spendsheet.definitions import DEFAULT_DEFINITIONS
from spendsheet.loader import Workbook
from spendsheet.router import identify_source

from statement_factory import KB_HEADER, PAYROLL_HEADER, kb_card_rows


def workbook_of(**sheets) -> Workbook:
    workbook = Workbook(detected_format="xlsx")
    for name, rows in sheets.items():
        workbook.add_sheet(name, rows)
    return workbook


class IdentifySourceTests(unittest.TestCase):
    def test_identifies_definition_header_and_sheet(self):
        workbook = workbook_of(안내=[["조회 결과 안내"]], 내역=kb_card_rows())
        result = identify_source("kb.xlsx", workbook)

        self.assertTrue(result.identified)
        self.assertEqual(result.definition.key, "kb_card")
        self.assertEqual(result.sheet_name, "내역")
        self.assertEqual(result.header_index, 1)
        self.assertEqual(result.header_row, KB_HEADER)
        self.assertIs(result.rows, workbook.sheets["내역"])

    def test_first_matching_sheet_wins(self):
        workbook = workbook_of(
            급여=[PAYROLL_HEADER, ["합계", 1, 2, 3]],
            카드=[KB_HEADER],
        )
        self.assertEqual(identify_source("both.xlsx", workbook).definition.key, "payroll_summary")

        reordered = workbook_of(카드=[KB_HEADER], 급여=[PAYROLL_HEADER])
        self.assertEqual(identify_source("both.xlsx", reordered).definition.key, "kb_card")

    def test_empty_sheets_are_skipped(self):
        workbook = workbook_of(Sheet1=[], Sheet2=kb_card_rows())
        self.assertEqual(identify_source("kb.xlsx", workbook).sheet_name, "Sheet2")

    def test_failure_carries_probe_of_first_row(self):
        header = [f"컬럼{i}" for i in range(12)]
        header[2] = None
        workbook = workbook_of(Sheet1=[header, ["x"] * 12])
        with self.assertLogs("spendsheet.router", level="WARNING"):
            result = identify_source("unknown.xlsx", workbook)

        self.assertFalse(result.identified)
        self.assertIsNone(result.definition)
        self.assertEqual(result.header_row, [])
        self.assertEqual(result.debug_header, "컬럼0,컬럼1,,컬럼3,컬럼4,컬럼5,컬럼6,컬럼7,컬럼8,컬럼9")

    def test_failure_probe_for_empty_workbook(self):
        self.assertEqual(identify_source("empty.xlsx", Workbook()).debug_header, "EMPTY")
        self.assertEqual(identify_source("empty.xlsx", workbook_of(Sheet1=[])).debug_header, "EMPTY")

    def test_search_depth_is_bounded(self):
        rows = [["머리말"]] * 10 + [KB_HEADER]
        workbook = workbook_of(Sheet1=rows)
        self.assertFalse(identify_source("deep.xlsx", workbook, DEFAULT_DEFINITIONS, max_rows=10).identified)
        self.assertTrue(identify_source("deep.xlsx", workbook, DEFAULT_DEFINITIONS, max_rows=11).identified)


if __name__ == "__main__":
    unittest.main()
