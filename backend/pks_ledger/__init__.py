"""PKS Ledger - accounting and inventory core for palm oil mill operations"""
