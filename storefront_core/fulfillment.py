"""
fulfillment.py — Order Fulfillment State Machine

Drives an order through two orthogonal status enums:

    Fulfillment: NEW → READY_TO_PICK → PICKING → PACKED → SHIPPED → COMPLETED  (+ CANCELLED)
    Payment:     AUTHORIZED → CAPTURED → REFUNDED,  AUTHORIZED → CANCELLED

Every transition is one row of TRANSITIONS: the statuses it accepts, the gateway
operation it needs (if any) and the payment status it leads to. Transitions never
raise for expected conditions; they return TransitionResult(ok, message).

Ordering for gateway transitions:
    1. Guard on the current statuses (no gateway call if it fails)
    2. Claim the order with a conditional update (pending_operation)
    3. Call the gateway
    4. Record the new payment status, or release the claim on failure

A local status change is written only after the gateway reported success, so a failed
or timed-out call leaves the order exactly as it was. Repeating a gateway transition
fails the payment-status guard, so the gateway is never contacted twice.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, FrozenSet, Optional

import httpx

from .errors import AmountError, ConcurrentUpdateError, InvalidInputError
from .gateway import GatewayResult, PaymentGatewayClient
from .models import FulfillmentStatus as F, Order, PaymentStatus as P, TransitionResult
from .money import ensure_amount
from .store import OrderStore

log = logging.getLogger(__name__)


class Transition(str, Enum):
    MARK_READY_TO_PICK = "mark_ready_to_pick"
    START_PICKING = "start_picking"
    UNDO_START_PICKING = "undo_start_picking"
    MARK_PACKED = "mark_packed"
    UNDO_PACKED = "undo_packed"
    MARK_SHIPPED = "mark_shipped"
    UNDO_SHIPPED = "undo_shipped"
    UPDATE_SHIPPING = "update_shipping"
    MARK_COMPLETED = "mark_completed"
    CANCEL_ORDER = "cancel_order"
    CAPTURE_PAYMENT = "capture_payment"
    CANCEL_AUTHORIZATION = "cancel_authorization"
    REFUND_PAYMENT = "refund_payment"


class GatewayOperation(str, Enum):
    CAPTURE = "capture"
    CANCEL = "cancel"
    REFUND = "refund"


ANY_PAYMENT = frozenset(P)


@dataclass(frozen=True)
class Rule:
    """
    One row of the transition table.

    fulfillment / payment: statuses the order must be in.
    gateway: gateway operation performed, None for local-only transitions.
    target_fulfillment / target_payment: statuses written on success (None = unchanged).
    """
    fulfillment: FrozenSet[F]
    payment: FrozenSet[P]
    fulfillment_message: str
    payment_message: str = ""
    gateway: Optional[GatewayOperation] = None
    target_fulfillment: Optional[F] = None
    target_payment: Optional[P] = None
    success_message: str = ""


TRANSITIONS = {
    Transition.MARK_READY_TO_PICK: Rule(
        fulfillment=frozenset({F.NEW}), payment=ANY_PAYMENT,
        fulfillment_message="Order is not new",
        target_fulfillment=F.READY_TO_PICK, success_message="Order ready to pick",
    ),
    Transition.START_PICKING: Rule(
        fulfillment=frozenset({F.NEW, F.READY_TO_PICK}), payment=ANY_PAYMENT,
        fulfillment_message="Order cannot be started for picking",
        target_fulfillment=F.PICKING, success_message="Picking started",
    ),
    Transition.UNDO_START_PICKING: Rule(
        fulfillment=frozenset({F.PICKING}), payment=ANY_PAYMENT,
        fulfillment_message="Order is not being picked",
        success_message="Picking undone",
    ),
    Transition.MARK_PACKED: Rule(
        fulfillment=frozenset({F.PICKING}), payment=ANY_PAYMENT,
        fulfillment_message="Order must be in picking",
        target_fulfillment=F.PACKED, success_message="Order packed",
    ),
    Transition.UNDO_PACKED: Rule(
        fulfillment=frozenset({F.PACKED}), payment=ANY_PAYMENT,
        fulfillment_message="Order is not packed",
        target_fulfillment=F.PICKING, success_message="Order returned to picking",
    ),
    Transition.MARK_SHIPPED: Rule(
        fulfillment=frozenset({F.PACKED}), payment=ANY_PAYMENT,
        fulfillment_message="Order must be packed",
        target_fulfillment=F.SHIPPED, success_message="Order marked as shipped",
    ),
    Transition.UNDO_SHIPPED: Rule(
        fulfillment=frozenset({F.SHIPPED}), payment=ANY_PAYMENT - {P.CAPTURED},
        fulfillment_message="Order is not shipped",
        payment_message="Cannot undo shipping after capture",
        target_fulfillment=F.PACKED, success_message="Order returned to packed",
    ),
    Transition.UPDATE_SHIPPING: Rule(
        fulfillment=frozenset({F.PACKED, F.SHIPPED, F.COMPLETED}), payment=ANY_PAYMENT,
        fulfillment_message="Shipping info cannot be updated for this order",
        success_message="Shipping info updated",
    ),
    Transition.MARK_COMPLETED: Rule(
        fulfillment=frozenset({F.SHIPPED}), payment=ANY_PAYMENT,
        fulfillment_message="Order must be shipped",
        target_fulfillment=F.COMPLETED, success_message="Order completed",
    ),
    Transition.CANCEL_ORDER: Rule(
        fulfillment=frozenset({F.NEW, F.READY_TO_PICK, F.PICKING}), payment=ANY_PAYMENT - {P.CAPTURED},
        fulfillment_message="Order can no longer be cancelled",
        payment_message="Captured payment must be refunded first",
        target_fulfillment=F.CANCELLED, success_message="Order cancelled",
    ),
    Transition.CAPTURE_PAYMENT: Rule(
        fulfillment=frozenset({F.SHIPPED}), payment=frozenset({P.AUTHORIZED}),
        fulfillment_message="Order must be shipped",
        payment_message="Payment is not authorized",
        gateway=GatewayOperation.CAPTURE, target_payment=P.CAPTURED,
        success_message="Payment captured",
    ),
    Transition.CANCEL_AUTHORIZATION: Rule(
        fulfillment=frozenset(F), payment=frozenset({P.AUTHORIZED}),
        fulfillment_message="",
        payment_message="Payment is not authorized",
        gateway=GatewayOperation.CANCEL, target_payment=P.CANCELLED,
        success_message="Authorization cancelled",
    ),
    Transition.REFUND_PAYMENT: Rule(
        fulfillment=frozenset(F), payment=frozenset({P.CAPTURED}),
        fulfillment_message="",
        payment_message="Payment is not captured",
        gateway=GatewayOperation.REFUND, target_payment=P.REFUNDED,
        success_message="Payment refunded",
    ),
}


def check_guard(rule: Rule, order: Order) -> Optional[str]:
    """Returns the guard failure message for `order`, or None if the rule accepts it."""
    if order.fulfillment_status not in rule.fulfillment:
        return rule.fulfillment_message
    if order.payment_status not in rule.payment:
        return rule.payment_message
    if rule.gateway is not None and not order.gateway_reference:
        return "Gateway reference is missing"
    return None


def _require_text(value: Optional[str], name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidInputError(f"{name} is required", field=name)
    return text


class OrderFulfillmentService:
    """
    Executes fulfillment transitions against an order store and a payment gateway.

    Args:
        store (OrderStore): Persistence with conditional updates.
        gateway (PaymentGatewayClient): Gateway used by capture/cancel/refund.
        clock (callable | None): Returns the current time; defaults to UTC now.
    """

    def __init__(self, store: OrderStore, gateway: PaymentGatewayClient,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.gateway = gateway
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # --- local-only transitions ---

    def mark_ready_to_pick(self, order_id: str) -> TransitionResult:
        return self._apply_local(order_id, Transition.MARK_READY_TO_PICK)

    def start_picking(self, order_id: str) -> TransitionResult:
        return self._apply_local(
            order_id, Transition.START_PICKING,
            lambda order: {"picking_started_from": order.fulfillment_status},
        )

    def undo_start_picking(self, order_id: str) -> TransitionResult:
        return self._apply_local(
            order_id, Transition.UNDO_START_PICKING,
            lambda order: {
                "fulfillment_status": order.picking_started_from or F.NEW,
                "picking_started_from": None,
            },
        )

    def mark_packed(self, order_id: str) -> TransitionResult:
        return self._apply_local(order_id, Transition.MARK_PACKED)

    def undo_packed(self, order_id: str) -> TransitionResult:
        return self._apply_local(order_id, Transition.UNDO_PACKED)

    def mark_shipped(self, order_id: str, carrier: str, tracking: str) -> TransitionResult:
        try:
            carrier = _require_text(carrier, "carrier")
            tracking = _require_text(tracking, "tracking")
        except InvalidInputError:
            return TransitionResult(ok=False, message="Carrier and tracking are required")
        return self._apply_local(
            order_id, Transition.MARK_SHIPPED,
            lambda order: {
                "shipped_at": self.clock(),
                "shipping_carrier": carrier,
                "shipping_tracking": tracking,
            },
        )

    def undo_shipped(self, order_id: str) -> TransitionResult:
        return self._apply_local(order_id, Transition.UNDO_SHIPPED, lambda order: {"shipped_at": None})

    def update_shipping(self, order_id: str, carrier: str, tracking: str) -> TransitionResult:
        try:
            carrier = _require_text(carrier, "carrier")
            tracking = _require_text(tracking, "tracking")
        except InvalidInputError:
            return TransitionResult(ok=False, message="Carrier and tracking are required")
        return self._apply_local(
            order_id, Transition.UPDATE_SHIPPING,
            lambda order: {"shipping_carrier": carrier, "shipping_tracking": tracking},
        )

    def mark_completed(self, order_id: str) -> TransitionResult:
        return self._apply_local(order_id, Transition.MARK_COMPLETED)

    def cancel_order(self, order_id: str) -> TransitionResult:
        return self._apply_local(order_id, Transition.CANCEL_ORDER)

    # --- gateway transitions ---

    def capture_payment(self, order_id: str) -> TransitionResult:
        return self._apply_gateway(
            order_id, Transition.CAPTURE_PAYMENT,
            call=lambda order: self.gateway.capture(order.gateway_reference, order.total),
            effects=lambda order: {"captured_at": self.clock()},
        )

    def cancel_authorization(self, order_id: str) -> TransitionResult:
        return self._apply_gateway(
            order_id, Transition.CANCEL_AUTHORIZATION,
            call=lambda order: self.gateway.cancel(order.gateway_reference),
        )

    def refund_payment(self, order_id: str, amount: Optional[int] = None) -> TransitionResult:
        """Refunds `amount` minor units (the full order total when omitted)."""
        if amount is not None:
            try:
                ensure_amount(amount, "amount")
            except AmountError as e:
                return TransitionResult(ok=False, message=e.message)
            if amount == 0:
                return TransitionResult(ok=False, message="Refund amount must be positive")

        def _validate(order: Order) -> Optional[str]:
            if amount is not None and amount > order.total:
                return f"Refund amount exceeds order total ({order.total})"
            return None

        return self._apply_gateway(
            order_id, Transition.REFUND_PAYMENT,
            call=lambda order: self.gateway.refund(order.gateway_reference, _refund_amount(order, amount)),
            effects=lambda order: {"refunded_amount": _refund_amount(order, amount)},
            validate=_validate,
        )

    def apply(self, order_id: str, transition: Transition, **params) -> TransitionResult:
        """Dispatches a transition by name; used by the HTTP binding."""
        return getattr(self, Transition(transition).value)(order_id, **params)

    # --- machinery ---

    def _load(self, order_id: str, transition: Transition):
        order = self.store.get(order_id)
        if order is None:
            log.info(f"[Order: {order_id}] {transition.value}: Bestellung nicht gefunden.")
            return None, TransitionResult(ok=False, message="Order not found")
        if order.pending_operation:
            log.info(f"[Order: {order_id}] {transition.value}: blockiert, {order.pending_operation} läuft.")
            return None, TransitionResult(ok=False, message="Another payment operation is in progress")
        return order, None

    def _apply_local(self, order_id: str, transition: Transition,
                     effects: Optional[Callable[[Order], dict]] = None) -> TransitionResult:
        rule = TRANSITIONS[transition]
        order, failure = self._load(order_id, transition)
        if failure:
            return failure

        guard_failure = check_guard(rule, order)
        if guard_failure:
            log.info(f"[Order: {order_id}] {transition.value} abgelehnt: {guard_failure}")
            return TransitionResult(ok=False, message=guard_failure)

        changes = {}
        if rule.target_fulfillment is not None:
            changes["fulfillment_status"] = rule.target_fulfillment
        if effects:
            changes.update(effects(order))

        try:
            updated = self.store.update_if(order.id, order.version, **changes)
        except ConcurrentUpdateError as e:
            log.warning(f"[Order: {order_id}] {transition.value}: gleichzeitige Änderung erkannt. {e}")
            return TransitionResult(ok=False, message="Order was modified concurrently, reload and retry")

        log.info(f"[Order: {order_id}] {transition.value}: {order.fulfillment_status.value} → "
                 f"{updated.fulfillment_status.value}")
        return TransitionResult(ok=True, message=rule.success_message, changed=True)

    def _apply_gateway(self, order_id: str, transition: Transition,
                       call: Callable[[Order], GatewayResult],
                       effects: Optional[Callable[[Order], dict]] = None,
                       validate: Optional[Callable[[Order], Optional[str]]] = None) -> TransitionResult:
        rule = TRANSITIONS[transition]
        order, failure = self._load(order_id, transition)
        if failure:
            return failure

        guard_failure = check_guard(rule, order) or (validate(order) if validate else None)
        if guard_failure:
            log.info(f"[Order: {order_id}] {transition.value} abgelehnt: {guard_failure}")
            return TransitionResult(ok=False, message=guard_failure)

        # 1. Claim: only one caller may reach the gateway for this order
        try:
            claimed = self.store.update_if(order.id, order.version, pending_operation=transition.value)
        except ConcurrentUpdateError:
            log.info(f"[Order: {order_id}] {transition.value}: Bestellung wurde parallel geändert.")
            return TransitionResult(ok=False, message="Order was modified concurrently, reload and retry")

        # 2. Gateway call
        log.info(f"[Order: {order_id}] {transition.value}: rufe Gateway ({rule.gateway.value}) auf...")
        try:
            result = call(claimed)
        except (httpx.HTTPError, ValueError) as e:
            log.error(f"[Order: {order_id}] {transition.value}: Gateway-Aufruf fehlgeschlagen ({e}). "
                      f"Status beim Gateway vor erneutem Versuch prüfen!", exc_info=True)
            self._release(claimed)
            return TransitionResult(
                ok=False, message="Payment gateway call failed; verify the payment with the gateway before retrying"
            )
        except Exception:
            self._release(claimed)
            raise

        if not result.ok:
            log.warning(f"[Order: {order_id}] {transition.value}: Gateway meldet Fehler: {result.error}")
            self._release(claimed)
            return TransitionResult(ok=False, message=result.error or f"Payment gateway {rule.gateway.value} failed")

        # 3. Record the outcome
        changes = {"payment_status": rule.target_payment, "pending_operation": None}
        if effects:
            changes.update(effects(claimed))
        try:
            self.store.update_if(claimed.id, claimed.version, **changes)
        except Exception:
            log.critical(f"[Order: {order_id}] KRITISCH: Gateway {rule.gateway.value} erfolgreich, "
                         f"aber lokale Speicherung fehlgeschlagen. BENÖTIGT MANUELLE AKTION!", exc_info=True)
            raise

        log.info(f"[Order: {order_id}] {transition.value}: Zahlung {order.payment_status.value} → "
                 f"{rule.target_payment.value}{' (mock)' if result.mocked else ''}")
        message = f"{rule.success_message} (mocked)" if result.mocked else rule.success_message
        return TransitionResult(ok=True, message=message, changed=True, mocked=result.mocked)

    def _release(self, claimed: Order):
        try:
            self.store.update_if(claimed.id, claimed.version, pending_operation=None)
        except ConcurrentUpdateError:
            log.critical(f"[Order: {claimed.id}] Claim {claimed.pending_operation} konnte nicht freigegeben werden.")
            raise


def _refund_amount(order: Order, amount: Optional[int]) -> int:
    return order.total if amount is None else amount
