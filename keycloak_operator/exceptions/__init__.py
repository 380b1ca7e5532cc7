"""
Custom exceptions for the Keycloak operator.

The migration planner itself never raises; these exceptions cover the
Kubernetes I/O and reconciliation layers around it.
"""
from typing import Optional, Dict, Any


class OperatorException(Exception):
    """
    Base exception for all operator errors.

    All custom exceptions should inherit from this base class.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class KubernetesError(OperatorException):
    """
    Raised when a Kubernetes API call or client configuration fails.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        super().__init__(message=message, details=details)


class ReconciliationError(OperatorException):
    """
    Raised when a desired state cannot be applied.

    Used for unsupported actions and invalid custom resources.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)
