# Attribution Ledger
# Flat owner entries and multi-hop attribution chains

"""
Tracks who is responsible for a unit of work.

An AttributionSet holds flat (id, name) owner entries and ordered
AttributionChains ("A did this on behalf of B on behalf of C"). Sets have
value semantics: assignment deep-copies, equality is structural, and the
legacy diff() ignores chains.
"""
