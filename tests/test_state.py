import unittest

from sales_doctor.pipeline import AnalysisResult
from sales_doctor.state import SOURCE_SAMPLE, SOURCE_UPLOADED, AnalysisState


class AnalysisStateTests(unittest.TestCase):
    def test_starts_on_the_sample_book(self):
        state = AnalysisState()
        self.assertTrue(state.is_sample)
        self.assertEqual(state.data_source, SOURCE_SAMPLE)
        self.assertEqual(state.bundle["summary"]["transactionCount"], 13)

    def test_replace_then_reset(self):
        state = AnalysisState()
        sample = state.bundle
        state.replace({"summary": {"transactionCount": 1}})
        self.assertEqual(state.data_source, SOURCE_UPLOADED)
        self.assertFalse(state.is_sample)
        state.reset()
        self.assertIs(state.bundle, sample)
        self.assertTrue(state.is_sample)

    def test_failed_result_keeps_current_bundle(self):
        state = AnalysisState()
        before = state.bundle
        failure = AnalysisResult.failure("File has insufficient data", "INSUFFICIENT_DATA", 400)
        self.assertFalse(state.apply(failure))
        self.assertIs(state.bundle, before)
        self.assertTrue(state.is_sample)


if __name__ == "__main__":
    unittest.main()
