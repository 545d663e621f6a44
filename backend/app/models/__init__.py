from app.models.user import User, UserRole
from app.models.sale import Sale, SaleItem, SaleStatus
from app.models.commission import (
    CommissionBasis, CommissionSettings, StaffCommissionOverride,
    StaffCommissionRateHistory, CommissionPayment,
)

__all__ = [
    "User",
    "UserRole",
    "Sale",
    "SaleItem",
    "SaleStatus",
    "CommissionBasis",
    "CommissionSettings",
    "StaffCommissionOverride",
    "StaffCommissionRateHistory",
    "CommissionPayment",
]
