"""
Services package.

storage     - document store interfaces and backends
sessions    - registration, login and logout
categories  - protected category operations
transactions - protected transaction operations
filters     - query-string filter parsing

Submodules are imported explicitly; this package does not re-export them,
so the audit logger can depend on storage without an import cycle.
"""
