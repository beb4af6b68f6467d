"""COD ledger constants."""

from decimal import Decimal

from django.db import models


class CODStatus(models.TextChoices):
    UNSETTLED = "unsettled", "Unsettled"
    SETTLED = "settled", "Settled"


class SettlementStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"


class SettlementMethod(models.TextChoices):
    CASH = "cash", "Cash"
    UPI = "upi", "UPI"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"


RECENT_TRANSACTIONS_LIMIT = 10
ZERO = Decimal("0.00")
