"""
Marketplace Portal Analytics

Revenue, trend and fulfillment analytics for seller and supplier dashboards.
"""

__version__ = "1.0.0"
