"""EasyTax - tax code rate tables per tenant."""

__version__ = "0.1.0"
