"""
audit_core: audit trail + monitoreo de seguridad.

Entrada habitual: audit_core.container (servicios ya compuestos).
"""

__version__ = "0.1.0"
