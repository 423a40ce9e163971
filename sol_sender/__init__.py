"""
sol_sender: build, sign, submit and confirm Solana transfers from a wallet.

Native SOL transfers, SPL token transfers (creating associated token accounts
on demand) and the "unpack" action, which moves one unit of a token to a
collector address and notifies the collector service once the transfer is
confirmed.
"""

__version__ = "0.1.0"
