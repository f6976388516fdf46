"""Application layer DTOs"""

from src.service.checkout.app.dto.checkout_result import CheckoutResult

__all__ = ['CheckoutResult']
