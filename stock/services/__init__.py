"""
Stock Services - Batch intake and consumption business logic

Usage:
    from stock.services import StockBatchService

    # Record an intake
    result = StockBatchService.create(product_name="Engine Oil 5W-30", batch_no="OIL-0425", ...)

    # Consume from a batch
    StockBatchService.consume(batch_id=1, quantity=2)
"""

# Base utilities
from stock.services.base_service import (
    ServiceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    BusinessRuleError,
    InsufficientStockError,
    AuthenticationError,
    PermissionDeniedError,
    UpstreamError,
    success_response,
    paginate_queryset,
    to_decimal,
    parse_decimal,
    parse_bool,
    parse_id,
    round_decimal,
    generate_number,
    BaseService,
)

# Stock operations
from .batch_service import StockBatchService


__all__ = [
    # Base
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "BusinessRuleError",
    "InsufficientStockError",
    "AuthenticationError",
    "PermissionDeniedError",
    "UpstreamError",
    "success_response",
    "paginate_queryset",
    "to_decimal",
    "parse_decimal",
    "parse_bool",
    "parse_id",
    "round_decimal",
    "generate_number",
    "BaseService",

    # Stock operations
    "StockBatchService",
]
