"""Branch order lifecycle service.

Branch users request stock, managers approve with quantity adjustment,
branches confirm or dispute, and unconfirmed orders close themselves once
a working-hours SLA runs out.
"""
