"""
Data quality error classifications for quote feed processing.

These exceptions categorize problems with payloads received from the feed
or prices handed to the analytics engine. All of them are recoverable: the
offending message or tick is dropped and processing continues.
"""

from typing import Optional, Dict, Any


class DataQualityError(Exception):
    """Base class for data quality issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MalformedMessageError(DataQualityError):
    """Feed sent a payload that cannot be parsed or lacks required fields."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format


class InvalidPriceError(DataQualityError):
    """Price is missing, not numeric, negative or not finite."""

    def __init__(self, message: str, price: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.price = price
