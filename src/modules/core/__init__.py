"""Storage, shared results and business rules for the storefront core."""
