"""Customer domain constants."""

CUSTOMERS_DOCUMENT_KEY = "customers"
ADDRESSES_DOCUMENT_KEY = "customer_addresses"
