"""Database models."""

from easytax.models.tenant import Tenant
from easytax.models.tax_code import TaxCode

__all__ = ["Tenant", "TaxCode"]
