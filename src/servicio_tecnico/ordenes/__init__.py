"""
Order Lifecycle Module
======================

Bounded context for repair orders of the technical service.

Responsibilities:
- Validate status changes against the transition graph
- Classify active orders with the semáforo (traffic light)
- Periodically sweep active orders and raise deduplicated alerts
- Serve the per-user notification bell
"""
