"""Cambio: cross-currency transfers with a USDT routing hub."""
