"""
Invoice Pricing Package

Prices client billing drafts for their payment method.
Resolves line amounts, ACH auto-pay discounts and card processing fees
into a finalized invoice line set with subtotal and total.
"""

__version__ = "1.0.0"
