# ==============================================================================
# AGRICSMART PACKAGE INITIALIZATION
# ==============================================================================
# Agriculture platform backend with FastAPI and MongoDB
# Marketplace, Payments, Notifications, Chat, Education, AI Advisory
# ==============================================================================

"""
AgricSmart Backend
==================

A FastAPI backend for an agriculture platform: farmers list produce,
buyers order it, payments are recorded, participants chat in realtime,
learners follow courses and everyone can ask an AI advisor.

Features:
---------
- Marketplace with atomic stock reservation and delivery fees
- Mock MoMo / card payments with provider webhook
- In-app notifications delivered through a persisted outbox
- Room-based realtime chat over WebSockets
- Courses, lesson progress and certificates
- JWT authentication with role-based access

Usage:
------
    uvicorn agricsmart.main:app --reload

Version: 1.0.0
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
