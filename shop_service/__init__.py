"""Order placement and order lifecycle service for the storefront."""
