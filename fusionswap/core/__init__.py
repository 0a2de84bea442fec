"""
fusionswap core primitives: hash locks, timelocks, the segmented fill
ledger, whitelists, clocks and the error hierarchy.
"""
