# backend/modules/orders/utils/audit_logger.py

import logging
import json
from typing import Dict, Any, Optional
from datetime import datetime


class AuditLogger:
    """
    Structured log of every order status change and payment

    Entries carry a JSON ``audit_data`` payload so they can be shipped to
    a log store and replayed when reconciling a till.
    """

    def __init__(self, name: str = "pos"):
        self.logger = logging.getLogger(f"{name}.audit")
        self.logger.setLevel(logging.INFO)

        # Ensure audit logs are always written
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - AUDIT - %(levelname)s - %(message)s - %(audit_data)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def _format_audit_data(self, **kwargs) -> Dict:
        """Format audit data for structured logging"""
        return {
            'audit_data': json.dumps({
                'timestamp': datetime.utcnow().isoformat(),
                'event_type': 'audit',
                **kwargs
            }, default=str)
        }

    def log_status_change(
        self,
        order_id: int,
        old_status: Any,
        new_status: Any,
        actor_id: Optional[int],
        trigger: str = "manual",
    ):
        """
        Record an order status change

        Args:
            order_id: Order whose status changed
            old_status: Status before the change
            new_status: Status after the change
            actor_id: Staff member responsible
            trigger: What caused it (manual, auto_start, items_prepared, payment)
        """
        old_value = getattr(old_status, "value", old_status)
        new_value = getattr(new_status, "value", new_status)
        self.logger.info(
            f"AUDIT: Order {order_id} {old_value} -> {new_value} ({trigger})",
            extra=self._format_audit_data(
                action="status_change",
                resource_type="order",
                resource_id=order_id,
                user_id=actor_id,
                old_status=old_value,
                new_status=new_value,
                trigger=trigger,
            )
        )

    def log_payment(
        self,
        order_id: int,
        payment_id: int,
        amount: Any,
        method: Any,
        actor_id: Optional[int],
        split_number: Optional[int] = None,
        paid_to_date: Any = None,
    ):
        self.logger.info(
            f"AUDIT: Payment {payment_id} of {amount} recorded on order {order_id}",
            extra=self._format_audit_data(
                action="record_payment",
                resource_type="order",
                resource_id=order_id,
                user_id=actor_id,
                payment_id=payment_id,
                amount=amount,
                method=getattr(method, "value", method),
                split_number=split_number,
                paid_to_date=paid_to_date,
            )
        )

    def log_action(
        self,
        action: str,
        user_id: Optional[int],
        resource_type: str,
        resource_id: Any,
        details: Optional[Dict] = None,
        result: str = "success",
    ):
        """Record any other state-changing action (table moves, item edits)"""
        self.logger.info(
            f"AUDIT: User {user_id} performed {action} on {resource_type} {resource_id}",
            extra=self._format_audit_data(
                action=action,
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details or {},
                result=result,
            )
        )

    def log_configuration_change(
        self,
        user_id: int,
        config_type: str,
        changes: Dict[str, Any],
    ):
        self.logger.warning(
            f"CONFIG CHANGE: User {user_id} changed {config_type}",
            extra=self._format_audit_data(
                event_subtype="configuration_change",
                user_id=user_id,
                config_type=config_type,
                changes={k: str(v)[:100] for k, v in changes.items()},
            )
        )


audit_logger = AuditLogger()
