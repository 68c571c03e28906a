"""ProjectFlow notification service package.

The package re-exports nothing; import the layers directly
(``projectflow.domain``, ``projectflow.application``,
``projectflow.infrastructure`` and ``projectflow.interfaces``).
"""
