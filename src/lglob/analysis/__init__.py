"""
Static Analysis Package.

Classifies the instructions of a listing into global references and checks
them against a whitelist.

Modules:
    - ``references``: The reference resolver state machine and its records.
    - ``whitelist``: Whitelist nodes, dotted-name resolution, scoped working copies.
    - ``policy``: Scoping policies producing per-unit verdicts and diagnostics.
    - ``modules``: Export surfaces of required modules.
    - ``xref``: Cross-reference and dependency queries.
"""
