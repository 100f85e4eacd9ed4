"""
water.gov.ge outage monitor
===========================
Polls the Georgian water authority's outage map, extracts the active
water-supply outages and keeps them in a DynamoDB table keyed by the
latinized service-center name and the outage start time.
"""

__version__ = "0.1.0"
