"""
varbill-store: persistence layer for a billing-management application.

The package owns one embedded SQLite database tracking direct clients, VAR
(reseller) partners, reseller-managed client deals, add-on licenses and VAR
commission invoices.

Importing the package has no side effects: no config is loaded, no logging is
configured and no database is opened.
"""

from varbill_store.persistence import Store, StoreError, StoreHandle

__version__ = "0.1.0"

__all__ = ["Store", "StoreError", "StoreHandle", "__version__"]
