import logging

import structlog

from config.settings import mask_sensitive_data


class TestLogPipeline:
    def test_service_log_carries_bound_context(self, caplog):
        structlog.contextvars.bind_contextvars(correlation_id="pipeline-cid-1")
        try:
            with caplog.at_level(logging.INFO):
                structlog.get_logger("modules.ledger.services").info(
                    "ledger.payout_requested", rider_id=7, total_amount="9000.00"
                )
        finally:
            structlog.contextvars.clear_contextvars()

        messages = [record.getMessage() for record in caplog.records]
        assert any("pipeline-cid-1" in m and "ledger.payout_requested" in m for m in messages)

    def test_refund_destination_masked_in_rendered_output(self, caplog):
        with caplog.at_level(logging.INFO):
            structlog.get_logger("modules.returns.services").info(
                "returns.requested",
                bank_account_number="123456789012",
                upi_id="asha.k@okaxis",
            )

        rendered = " ".join(record.getMessage() for record in caplog.records)
        assert "123456789012" not in rendered
        assert "asha.k@okaxis" not in rendered
        assert "***MASKED***" in rendered


class TestSensitiveDataMasking:
    def test_bank_account_masked(self):
        event_dict = {"event": "test", "account": "acct 123456789012"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "123456789012" not in result["account"]
        assert "***MASKED***" in result["account"]

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]

    def test_order_fields_unchanged(self):
        event_dict = {"event": "order.created", "order_id": "100", "total_price": "450.00"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result == {"event": "order.created", "order_id": "100", "total_price": "450.00"}
