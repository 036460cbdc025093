"""Billing domain records."""

from varbill_store.domain.models import (
    AdditionalLicense,
    CanonicalModel,
    Client,
    VarClient,
    VarClientInvoice,
    VarInvoiceTracking,
    VarPartner,
)

__all__ = [
    "AdditionalLicense",
    "CanonicalModel",
    "Client",
    "VarClient",
    "VarClientInvoice",
    "VarInvoiceTracking",
    "VarPartner",
]
