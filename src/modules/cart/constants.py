"""Cart domain constants."""

CART_DOCUMENT_KEY = "cart"
