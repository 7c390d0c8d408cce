"""Business services: ledger engines and document workflows"""
