"""
crl_pruner — remove duplicated revocations from a CA's CRL.

Loads the CA key and CRL file, drops repeated revocations of the same serial
number, bumps the CRL number and signs the CRL again.

Built on the Railway-Oriented Programming (ROP) helpers in
``crl_pruner.railway`` for explicit, composable error handling.
"""

__version__ = "0.1.0"
