"""Service modules"""
from .session import AlpSession, build_ledger, build_signer

__all__ = ["AlpSession", "build_ledger", "build_signer"]
