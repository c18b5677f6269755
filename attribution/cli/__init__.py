# CLI package for the Attribution Ledger
"""
Command line tool for building and inspecting encoded attribution sets.

Commands:
    attribution build   — Build a set and write its encoding to a file
    attribution show    — Decode a file and print its entries and chains
    attribution compare — Compare two encoded sets
"""
