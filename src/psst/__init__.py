"""
psst — drop secrets for the people and teams of your organization.

Identities come from the organization's directory (GitHub).
Secrets live in the storage backend (Vault). psst keeps a cached
snapshot of the directory so every command doesn't pay for
hundreds of lookups.
"""

import os

__version__ = "0.1.0"

PSST_HOME = os.environ.get("PSST_HOME", "~/.psst")
