"""
Fabric Chinese Wall toolkit - provisioning and validation for two-entity data segregation.
"""

__version__ = "1.0.0"
