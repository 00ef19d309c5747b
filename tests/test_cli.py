import io
import json
import logging
import unittest
from contextlib import redirect_stdout
from unittest import mock

from sonic_agent import cli
from sonic_agent.errors import QuoteUnavailable
from sonic_agent.models import QuoteSummary, SwapDirection, TransferResult


class CliTests(unittest.TestCase):
    def run_cli(self, argv, agent):
        out = io.StringIO()
        with mock.patch.object(cli, "SonicSwapAgent", return_value=agent), mock.patch.object(cli, "load_keypair"), mock.patch.object(
            cli, "configure_logging"
        ), redirect_stdout(out):
            code = cli.main(argv)
        return code, json.loads(out.getvalue())

    def test_quote_converts_human_amount(self) -> None:
        agent = mock.Mock()
        agent.quote.return_value = QuoteSummary(100_000_000, 2_500_000, 0.05, "A", "B")

        code, output = self.run_cli(["quote", "A", "B", "0.1"], agent)

        self.assertEqual(code, 0)
        self.assertEqual(output["outputAmount"], 2_500_000)
        args, kwargs = agent.quote.call_args
        self.assertEqual(args, ("A", "B", 100_000_000))
        self.assertEqual(kwargs["direction"], SwapDirection.EXACT_INPUT)
        agent.close.assert_called_once()

    def test_agent_error_reports_stage(self) -> None:
        agent = mock.Mock()
        agent.swap.side_effect = QuoteUnavailable("quote failed")

        code, output = self.run_cli(["swap", "A", "B", "1", "--decimals", "6"], agent)

        self.assertEqual(code, 1)
        self.assertEqual(output["stage"], "quote")
        self.assertEqual(agent.swap.call_args.args[2], 1_000_000)

    def test_token_transfer_uses_mint_decimals(self) -> None:
        agent = mock.Mock()
        agent.ledger.get_mint_decimals.return_value = 6
        agent.transfer.return_value = TransferResult("SIG", "R", 1_500_000, "M")

        code, output = self.run_cli(["transfer", "R", "1.5", "--mint", "M"], agent)

        self.assertEqual(code, 0)
        self.assertEqual(output["signature"], "SIG")
        agent.transfer.assert_called_once_with("R", 1_500_000, mint="M", timeout=None)

    def test_tps(self) -> None:
        agent = mock.Mock()
        agent.get_tps.return_value = 2_500.0

        code, output = self.run_cli(["tps"], agent)

        self.assertEqual((code, output["tps"]), (0, 2_500.0))

    def test_configure_logging_replaces_handlers(self) -> None:
        log = cli.configure_logging("WARNING")
        self.addCleanup(cli.configure_logging, "WARNING")

        cli.configure_logging("DEBUG")

        self.assertEqual(len(log.handlers), 1)
        self.assertEqual(log.level, logging.DEBUG)

    def test_invalid_amount_rejected(self) -> None:
        code, output = self.run_cli(["estimate", "A", "B", "zero"], mock.Mock())
        self.assertEqual(code, 2)
        self.assertEqual(output["status"], "error")


if __name__ == "__main__":
    unittest.main()
