"""
                Storefront Order Service

Order lifecycle core for a restaurant storefront: cart and pricing,
dish customization, multi-step checkout and timed order tracking,
with mock submission and order-lookup services.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
