# Overview: Recomputes derived customer aggregates (orders_count, total_spent) from local orders.

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..models import Customer, Order


logger = logging.getLogger(__name__)


class StatisticsRecalculator:
    def __init__(self, session: Session):
        self.session = session

    def recompute_customer_stats(self, tenant_id: int) -> int:
        """
        Set total_spent and orders_count for every customer of the tenant.

        Orders are matched on the denormalized customer_shopify_id, so orders
        whose customer row did not exist at sync time still count. Runs as a
        single UPDATE with correlated aggregates; customers without orders
        get 0 / 0.

        Returns the number of customer rows updated.
        """
        matching_orders = (
            Order.tenant_id == tenant_id,
            Order.customer_shopify_id == Customer.shopify_customer_id,
        )
        spent = (
            select(func.coalesce(func.sum(Order.total_price), 0))
            .where(*matching_orders)
            .correlate_except(Order)
            .scalar_subquery()
        )
        count = (
            select(func.count(Order.id))
            .where(*matching_orders)
            .correlate_except(Order)
            .scalar_subquery()
        )
        result = self.session.execute(
            update(Customer)
            .where(Customer.tenant_id == tenant_id)
            .values(total_spent=spent, orders_count=count, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        logger.info("Updated statistics for %s customer(s) of tenant %s", result.rowcount, tenant_id)
        return result.rowcount
