"""
consulreg

Register a service instance and its HTTP health check with Consul, and
de-register it again on shutdown.
"""

from .manager import RegistrationManager, ShutdownHook
from .registration import RegistrationConfigError, ServiceRegistration, get_registration

__version__ = '0.1.0'
__all__ = [
    'RegistrationConfigError',
    'RegistrationManager',
    'ServiceRegistration',
    'ShutdownHook',
    'get_registration',
]
