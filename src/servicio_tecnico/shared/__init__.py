"""
Shared Kernel Module
====================

Generic infrastructure shared by every bounded context (logging,
HTTP middleware). No order-lifecycle logic belongs here.
"""
