"""Registry: the git-backed metadata tree that records packages and versions.

The registry layer provides:
- Location: resolving a registry reference to a usable working copy
- Checks: identity, dependency and compatibility consistency
- Mutation: the four per-package files and the package index
- Registration: the transactional state machine tying it all together
"""
