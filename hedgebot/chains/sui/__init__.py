"""SUI chain access: RPC client, transaction bundle and signer."""
from .client import SuiClient
from .signer import SuiSigner
from .transaction import Argument, InstructionBundle

__all__ = ["Argument", "InstructionBundle", "SuiClient", "SuiSigner"]
