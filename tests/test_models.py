import unittest
from decimal import Decimal

from sonic_agent.errors import ConfirmationTimeout, DeadlineExceeded, QuoteUnavailable
from sonic_agent.models import Deadline, SwapResult, to_smallest_units


class SmallestUnitTests(unittest.TestCase):
    def test_converts_with_fixed_exponent(self) -> None:
        self.assertEqual(to_smallest_units("0.1"), 100_000_000)
        self.assertEqual(to_smallest_units(Decimal("2.5"), decimals=6), 2_500_000)
        self.assertEqual(to_smallest_units(0.1), 100_000_000)

    def test_rounds_down(self) -> None:
        self.assertEqual(to_smallest_units("1.0000000019"), 1_000_000_001)

    def test_rejects_dust_and_garbage(self) -> None:
        for value in ("0", "-1", "0.0000000001", "abc", "NaN"):
            with self.assertRaises(ValueError):
                to_smallest_units(value)


class ResultTests(unittest.TestCase):
    def test_swap_result_dict_omits_extra_signatures(self) -> None:
        result = SwapResult("SIG2", 10, 20, "A", "B", signatures=("SIG1", "SIG2"))
        self.assertEqual(set(result.as_dict()), {"signature", "inputAmount", "outputAmount", "inputMint", "outputMint"})


class DeadlineTests(unittest.TestCase):
    def test_budget_caps_at_ceiling(self) -> None:
        self.assertLessEqual(Deadline.after(60).budget("quote", 5.0), 5.0)

    def test_expired_budget_raises(self) -> None:
        with self.assertRaises(DeadlineExceeded) as ctx:
            Deadline.after(-1).budget("build", 5.0)
        self.assertEqual(ctx.exception.stage, "build")


class ErrorTests(unittest.TestCase):
    def test_stage_defaults_per_kind(self) -> None:
        self.assertEqual(QuoteUnavailable("x").stage, "quote")
        self.assertEqual(ConfirmationTimeout("x", signature="S").stage, "confirm")

    def test_str_includes_context(self) -> None:
        text = str(QuoteUnavailable("quote failed", http_status=502, service_message="bad gateway"))
        self.assertIn("status=502", text)
        self.assertIn("bad gateway", text)


if __name__ == "__main__":
    unittest.main()
