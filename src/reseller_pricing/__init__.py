"""
Reseller Pricing Package

Markup rule resolution and pricing for a bulk-messaging reseller platform.
Resolves the single applicable markup rule for a send, prices it in Decimal
and aggregates recorded decisions into profit analytics.
"""

__version__ = "1.0.0"
