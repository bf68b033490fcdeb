"""
Servicio Técnico - Repair Order Back Office
============================================

Lifecycle engine for repair orders:
- Transition graph validating every status change
- Semáforo (traffic-light) classifier for order health
- Periodic alert sweep producing deduplicated, role-routed notifications
"""

__version__ = "1.0.0"
