"""machine-setup: declarative setup for Debian/Ubuntu machines.

Core design goals:
- Desired state in one YAML file
- Idempotent: a second run changes nothing
- Fail forward: one broken package or mount never stops the rest
- Every outcome reported, exit status 1 on any failure
"""

__version__ = "0.2.0"

__all__ = ["__version__"]
