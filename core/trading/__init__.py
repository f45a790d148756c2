"""
Shared trading core: money arithmetic and the domain models used by the
market data, portfolio and ledger services.
"""
