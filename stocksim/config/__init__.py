# Config module
"""Application settings and credential persistence."""

from stocksim.config.credentials import DEMO_CREDENTIALS, CredentialStore
from stocksim.config.settings import AppSettings, load_settings, save_settings

__all__ = ["AppSettings", "CredentialStore", "DEMO_CREDENTIALS", "load_settings", "save_settings"]
