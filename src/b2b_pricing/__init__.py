"""
B2B Pricing Package

Evaluates merchant-configured wholesale pricing rules against a cart and
produces per-line discounts for the checkout host.
Pipeline: decode → match → resolve → calculate → compose.
"""

__version__ = "1.0.0"
