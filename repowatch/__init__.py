"""Repository health alerting engine"""

__version__ = '1.0.0'
