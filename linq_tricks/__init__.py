# Package initializer: exports the query engine, the records and the query recipes.

from .exceptions import LinqException, LinqValidationException, LinqNotSupportedException, \
    LinqLimitExceededException
from . import common
from . import queries
from .common import QueryPlan
from .queries import Expression, ListPlan, WherePlan, SelectPlan
from .linq import Queryable, Policy, Grouping, F, from_collection, load_policy
from .models import Customer, Order, Product
from .dtos import OrderDto, OrderGroupResult, CustomerOrderSummary
from .order_queries import (
    get_all_orders, get_customers_with_pending_orders, get_large_orders, get_order_summary_by_category,
    get_available_products, get_unique_customers, get_total_amount, get_customer_summaries, get_page,
    transform_orders,
)
from .arrow_bridge import to_arrow, ArrowNotAvailable

__version__ = "0.1.0"
