"""
Status and amount rules shared by QuotationService and InvoiceService.

- quotation status transition table
- invoice payment status derivation
- server-side total recomputation
- document number generation
"""
import time
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, FrozenSet, Iterable, Optional

from sqlalchemy.orm import Session

from partsdesk.db.enums import QuotationStatus, PaymentStatus
from partsdesk.errors import InvalidStateError, ValidationError
from partsdesk.models.mixins.timestamp_mixin import utcnow

MONEY_QUANT = Decimal("0.01")
TOTAL_TOLERANCE = Decimal("0.01")

# ======================================================
# 📌 Quotation state machine
# ======================================================

QUOTATION_TRANSITIONS: Dict[QuotationStatus, FrozenSet[QuotationStatus]] = {
    QuotationStatus.draft: frozenset({
        QuotationStatus.pending,
        QuotationStatus.cancelled,
        QuotationStatus.expired,
        QuotationStatus.invoiced,
    }),
    QuotationStatus.pending: frozenset({
        QuotationStatus.confirmed,
        QuotationStatus.cancelled,
        QuotationStatus.expired,
        QuotationStatus.invoiced,
    }),
    QuotationStatus.confirmed: frozenset({QuotationStatus.invoiced}),
    QuotationStatus.invoiced: frozenset(),
    QuotationStatus.sold: frozenset(),
    QuotationStatus.cancelled: frozenset(),
    QuotationStatus.expired: frozenset(),
}

# 只能通过 convert_to_invoice 到达的状态
CONVERSION_ONLY_STATUSES = frozenset({QuotationStatus.invoiced, QuotationStatus.sold})

# 处于这些状态的报价单不可再编辑
IMMUTABLE_QUOTATION_STATUSES = frozenset({
    QuotationStatus.confirmed,
    QuotationStatus.invoiced,
    QuotationStatus.sold,
})

CONVERTIBLE_QUOTATION_STATUSES = frozenset(
    status for status, targets in QUOTATION_TRANSITIONS.items()
    if QuotationStatus.invoiced in targets
)


def can_transition(current: QuotationStatus, target: QuotationStatus) -> bool:
    return target in QUOTATION_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: QuotationStatus, target: QuotationStatus) -> None:
    '''
    校验报价单状态流转是否合法，非法时抛出 InvalidStateError

    :param current: 当前状态
    :type current: QuotationStatus
    :param target: 目标状态
    :type target: QuotationStatus
    '''
    if current == target:
        raise InvalidStateError(f"Quotation is already {current.value}")
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Cannot change quotation status from {current.value} to {target.value}"
        )


# ======================================================
# 💰 Payment status
# ======================================================

def derive_payment_status(
    total_amount: Decimal,
    paid_amount: Decimal,
    due_date: Optional[datetime],
    now: Optional[datetime] = None,
) -> PaymentStatus:
    '''
    根据金额和到期日推导付款状态
    paid > overdue > partial > pending

    :param total_amount: 发票总额
    :param paid_amount: 已付金额
    :param due_date: 到期日，可为空（永不逾期）
    :param now: 参考时间，默认当前 UTC
    :return: PaymentStatus
    '''
    now = now or utcnow()
    paid_amount = paid_amount or Decimal("0")
    if paid_amount >= total_amount:
        return PaymentStatus.paid
    if due_date is not None and due_date < now:
        return PaymentStatus.overdue
    if paid_amount > 0:
        return PaymentStatus.partial
    return PaymentStatus.pending


# ======================================================
# 🧮 Totals
# ======================================================

def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price: Decimal, discount: Decimal) -> Decimal:
    gross = Decimal(quantity) * Decimal(str(unit_price))
    return to_money(gross * (Decimal("100") - Decimal(str(discount))) / Decimal("100"))


def document_total(
    subtotal: Decimal,
    tax_amount: Decimal,
    discount_amount: Decimal,
    shipping_amount: Decimal,
) -> Decimal:
    return to_money(
        Decimal(str(subtotal))
        + Decimal(str(tax_amount))
        - Decimal(str(discount_amount))
        + Decimal(str(shipping_amount))
    )


def _close_enough(supplied, expected: Decimal) -> bool:
    return abs(Decimal(str(supplied)) - expected) <= TOTAL_TOLERANCE


def check_quotation_totals(
    *,
    items: Iterable,
    subtotal: Decimal,
    tax_amount: Decimal,
    discount_amount: Decimal,
    shipping_amount: Decimal,
    total_amount: Decimal,
) -> None:
    '''
    服务端重新计算金额，与调用方提交的金额不一致时拒绝
    items 中每个元素需有 quantity / unit_price / discount / total_price 属性

    :raises ValidationError: 任一金额不一致
    '''
    expected_subtotal = Decimal("0")
    for index, item in enumerate(items):
        expected = line_total(item.quantity, item.unit_price, item.discount)
        if not _close_enough(item.total_price, expected):
            raise ValidationError(
                f"items.{index}.totalPrice: expected {expected}, got {to_money(item.total_price)}"
            )
        expected_subtotal += expected

    if not _close_enough(subtotal, expected_subtotal):
        raise ValidationError(
            f"subtotal: expected {to_money(expected_subtotal)}, got {to_money(subtotal)}"
        )

    expected_total = document_total(subtotal, tax_amount, discount_amount, shipping_amount)
    if not _close_enough(total_amount, expected_total):
        raise ValidationError(
            f"totalAmount: expected {expected_total}, got {to_money(total_amount)}"
        )


# ======================================================
# 🔢 Document numbers
# ======================================================

def generate_document_number(db: Session, column, prefix: str) -> str:
    '''
    生成 <prefix>-<毫秒时间戳> 形式的单号，与已有单号冲突时递增

    :param db: 数据库会话
    :param column: 单号所在列，如 Quotation.quotation_number
    :param prefix: 前缀，如 "QT"
    '''
    stamp = int(time.time() * 1000)
    while True:
        candidate = f"{prefix}-{stamp}"
        exists = db.query(column).filter(column == candidate).first()
        if not exists:
            return candidate
        stamp += 1
