"""
Remote collaborators.
"""

from .certification import CertificationClient

__all__ = ["CertificationClient"]
