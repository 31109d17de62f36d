"""Infrastructure layer — trust store, issuer adapters, import graph, files.

This layer builds on the domain layer and NetworkX.
It must never import from services, commands, or output.
"""
