"""
On-chain program bindings

Each subpackage holds the seeds, math, instruction builders and account
parsers of one concentrated-liquidity program.
"""
