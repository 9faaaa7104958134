"""Bitrise provider.

Maps declarative resource and data-source definitions onto the Bitrise REST API.
"""

__version__ = "0.1.0"

from bitrise_provider.config import ProviderConfig
from bitrise_provider.provider import BitriseProvider, OperationResult

__all__ = [
    "BitriseProvider",
    "OperationResult",
    "ProviderConfig",
    "__version__",
]
