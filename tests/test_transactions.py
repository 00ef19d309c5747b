import unittest

from sonic_agent.errors import TransactionBuildFailed
from sonic_agent.http_client import HttpError
from sonic_agent.quotes import QuoteFetcher
from sonic_agent.transactions import TransactionBuilder

from tests.support import FakeHttp, build_response, quote_response


def sample_quote(**overrides):
    return QuoteFetcher(FakeHttp({}), "https://api.example").parse_quote(quote_response(**overrides), "A", "B")


class TransactionBuilderTests(unittest.TestCase):
    def test_request_body_omits_unset_options(self) -> None:
        builder = TransactionBuilder(FakeHttp({}), "https://api.example")
        quote = sample_quote()

        body = builder.request_body("WALLET", quote)

        self.assertEqual(body["wallet"], "WALLET")
        self.assertEqual(body["txVersion"], "V0")
        self.assertTrue(body["wrapSol"])
        self.assertTrue(body["unwrapSol"])
        self.assertEqual(body["swapResponse"], {"id": "quote-1", "success": True, "data": quote.data})
        self.assertNotIn("computeUnitPriceMicroLamports", body)
        self.assertNotIn("outputAccount", body)

    def test_request_body_includes_hints(self) -> None:
        builder = TransactionBuilder(FakeHttp({}), "https://api.example")

        body = builder.request_body(
            "WALLET",
            sample_quote(),
            tx_version="LEGACY",
            compute_unit_price_micro_lamports=10_500,
            wrap_sol=True,
            unwrap_sol=False,
            output_account="ATA",
        )

        self.assertEqual(body["computeUnitPriceMicroLamports"], "10500")
        self.assertEqual(body["outputAccount"], "ATA")
        self.assertEqual(body["txVersion"], "LEGACY")
        self.assertFalse(body["unwrapSol"])

    def test_build_posts_to_direction_endpoint_and_keeps_order(self) -> None:
        http = FakeHttp({"/swap/transaction/": build_response(b"setup", b"swap")})
        builder = TransactionBuilder(http, "https://api.example")

        bundle = builder.build("WALLET", sample_quote(swap_type="swap-base-out"))

        self.assertEqual(http.calls[0]["method"], "POST")
        self.assertEqual(http.calls[0]["url"], "https://api.example/swap/transaction/swap-base-out")
        self.assertEqual(bundle.payloads, (b"setup", b"swap"))

    def test_zero_transactions_fail(self) -> None:
        http = FakeHttp({"/swap/transaction/": {"id": "b", "success": True, "data": []}})
        builder = TransactionBuilder(http, "https://api.example")

        with self.assertRaises(TransactionBuildFailed):
            builder.build("WALLET", sample_quote())

    def test_success_false_fails_with_message(self) -> None:
        http = FakeHttp({"/swap/transaction/": {"id": "b", "success": False, "msg": "INSUFFICIENT_BALANCE"}})
        builder = TransactionBuilder(http, "https://api.example")

        with self.assertRaises(TransactionBuildFailed) as ctx:
            builder.build("WALLET", sample_quote())
        self.assertEqual(ctx.exception.service_message, "INSUFFICIENT_BALANCE")
        self.assertEqual(ctx.exception.stage, "build")

    def test_entry_without_payload_fails(self) -> None:
        builder = TransactionBuilder(FakeHttp({}), "https://api.example")
        with self.assertRaises(TransactionBuildFailed):
            builder.parse_bundle({"success": True, "data": [{"tx": "abc"}]})
        with self.assertRaises(TransactionBuildFailed):
            builder.parse_bundle({"success": True, "data": [{"transaction": "not base64!"}]})

    def test_http_failure_maps_to_build_failed(self) -> None:
        http = FakeHttp({"/swap/transaction/": HttpError("POST failed", http_status=500, body="oops")})
        builder = TransactionBuilder(http, "https://api.example")

        with self.assertRaises(TransactionBuildFailed) as ctx:
            builder.build("WALLET", sample_quote())
        self.assertEqual(ctx.exception.http_status, 500)


if __name__ == "__main__":
    unittest.main()
